"""Delimited-text parsing with a header row."""

import io
from typing import Dict, List

import pandas as pd


class CsvParseError(ValueError):
    """Raised when delimited text cannot be parsed."""


def read_csv_rows(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text whose first row holds the field names.

    Every cell is read as a string; empty cells stay empty strings and blank
    lines are skipped.

    Args:
        text: Raw CSV content

    Returns:
        One dict per data row

    Raises:
        CsvParseError: If the text is not valid delimited data
    """
    if not text or not text.strip():
        return []
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        raise CsvParseError(str(e)) from e
    frame.columns = [str(column).strip() for column in frame.columns]
    return frame.to_dict(orient="records")
