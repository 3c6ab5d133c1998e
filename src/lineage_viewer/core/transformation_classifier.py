"""Infer column transformation kinds from SQL expressions using sqlglot."""

from typing import Optional

import sqlglot
import sqlglot.expressions as exp
from sqlglot.errors import SqlglotError

from .models import TransformationType
from ..utils.logging_config import get_logger

logger = get_logger('transformation_classifier')

DATE_KEYWORDS = ('date', 'time', 'year', 'month', 'day', 'week', 'hour', 'quarter')
STRING_FUNCTIONS = {
    'concat', 'concatws', 'concat_ws', 'upper', 'lower', 'substring', 'substr', 'trim',
    'ltrim', 'rtrim', 'length', 'initcap', 'regexpextract', 'regexp_extract',
    'regexpreplace', 'regexp_replace', 'lpad', 'rpad', 'replace', 'split', 'format_string',
}
ARRAY_PREFIXES = ('array', 'explode', 'posexplode', 'flatten', 'collect_list', 'collect_set')


def parse_expression(expression: str, dialect: str = "spark") -> Optional[exp.Expression]:
    """Parse a single expression, returning None when sqlglot cannot parse it."""
    try:
        return sqlglot.parse_one(expression, dialect=dialect)
    except SqlglotError as e:
        logger.debug(f"Could not parse expression {expression!r}: {e}")
        return None


def _function_name(func: exp.Func) -> str:
    if isinstance(func, exp.Anonymous):
        return str(func.name).lower()
    return func.key.lower()


def _is_date_function(name: str) -> bool:
    return any(keyword in name for keyword in DATE_KEYWORDS)


def _is_array_function(name: str) -> bool:
    return name.startswith(ARRAY_PREFIXES)


def classify_transformation(expression: Optional[str], dialect: str = "spark") -> TransformationType:
    """
    Classify a column expression into a transformation kind.

    Args:
        expression: SQL expression text, e.g. "SUM(amount) AS total"
        dialect: sqlglot dialect used for parsing

    Returns:
        The inferred TransformationType (UNKNOWN when empty or unparsable)
    """
    if not expression or not expression.strip():
        return TransformationType.UNKNOWN

    node = parse_expression(expression, dialect)
    if node is None:
        return TransformationType.UNKNOWN

    if isinstance(node, exp.Alias):
        if isinstance(node.this, exp.Column):
            return TransformationType.ALIAS
        node = node.this

    if isinstance(node, exp.Column):
        return TransformationType.DIRECT
    if isinstance(node, (exp.Literal, exp.Null, exp.Boolean)):
        return TransformationType.LITERAL

    # Precedence: a windowed aggregate is a window, an aggregate of a CASE is an aggregation
    if node.find(exp.Window):
        return TransformationType.WINDOW
    if node.find(exp.AggFunc):
        return TransformationType.AGGREGATION
    if node.find(exp.Case, exp.If):
        return TransformationType.CONDITIONAL
    if isinstance(node, (exp.Cast, exp.TryCast)):
        return TransformationType.CAST

    if isinstance(node, exp.Array):
        return TransformationType.ARRAY_EXPR

    names = [_function_name(func) for func in node.find_all(exp.Func)]
    if any(_is_array_function(name) for name in names):
        return TransformationType.ARRAY_EXPR
    if any(_is_date_function(name) for name in names):
        return TransformationType.DATE_EXPR
    if node.find(exp.DPipe) or any(name in STRING_FUNCTIONS for name in names):
        return TransformationType.STRING_EXPR

    return TransformationType.EXPRESSION
