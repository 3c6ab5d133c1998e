"""Data models for table and column lineage."""

from typing import Dict, List, Optional, Any, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum

ALL_DATABASES = "all"


class TableType(str, Enum):
    """Table storage type enumeration."""
    PARQUET = "PARQUET"
    CSV = "CSV"
    TABLE = "TABLE"

    @classmethod
    def classify(cls, raw_type: Optional[str]) -> "TableType":
        """Map a raw type string onto a known type, defaulting to TABLE."""
        if raw_type:
            normalized = raw_type.strip().upper()
            if normalized == cls.PARQUET.value:
                return cls.PARQUET
            if normalized == cls.CSV.value:
                return cls.CSV
        return cls.TABLE


class TransformationType(str, Enum):
    """Column transformation kind enumeration."""
    DIRECT = "DIRECT"
    ALIAS = "ALIAS"
    AGGREGATION = "AGGREGATION"
    CONDITIONAL = "CONDITIONAL"
    EXPRESSION = "EXPRESSION"
    LITERAL = "LITERAL"
    CAST = "CAST"
    DATE_EXPR = "DATE_EXPR"
    STRING_EXPR = "STRING_EXPR"
    WINDOW = "WINDOW"
    GROUPBY = "GROUPBY"
    ARRAY_EXPR = "ARRAY_EXPR"
    JOIN = "JOIN"
    WITHCOLUMN = "WITHCOLUMN"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw_value: Optional[str]) -> Optional["TransformationType"]:
        """Parse a raw value, returning None when it is not a known member."""
        if not raw_value:
            return None
        try:
            return cls(raw_value.strip().upper())
        except ValueError:
            return None


class FilterScope(str, Enum):
    """Which side of a relationship the database filter applies to."""
    DESTINATION = "destination"
    SOURCE = "source"
    BOTH = "both"


class SearchScope(str, Enum):
    """Which names a search term is matched against."""
    DESTINATION = "destination"
    SOURCE = "source"
    ALL = "all"


def display_name(table_name: str) -> str:
    """Strip the database qualifier, e.g. 'orders(sales.db)' -> 'orders'."""
    return table_name.split('(')[0].strip()


@dataclass(frozen=True)
class Relationship:
    """A single source -> destination edge produced by a notebook."""
    notebook: Optional[str]
    source: str
    source_type: Optional[str]
    destination: str
    destination_type: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notebook": self.notebook,
            "source": self.source,
            "sourceType": self.source_type,
            "destination": self.destination,
            "destinationType": self.destination_type,
        }


@dataclass
class TableNode:
    """A table in the lineage graph."""
    name: str
    type: Optional[str] = None
    database: Optional[str] = None
    source_names: List[str] = field(default_factory=list)
    notebooks: List[str] = field(default_factory=list)
    resolved: bool = True

    @property
    def table_type(self) -> TableType:
        return TableType.classify(self.type)

    @property
    def display_name(self) -> str:
        return display_name(self.name)

    @property
    def source_count(self) -> int:
        return len(self.source_names)

    @property
    def has_sources(self) -> bool:
        return bool(self.source_names)

    def add_source(self, source_name: str) -> bool:
        """Append a source once, never the table itself. Returns True if added."""
        if source_name == self.name or source_name in self.source_names:
            return False
        self.source_names.append(source_name)
        return True

    def add_notebook(self, notebook: Optional[str]) -> bool:
        """Append a producing notebook once. Returns True if added."""
        if not notebook or notebook in self.notebooks:
            return False
        self.notebooks.append(notebook)
        return True


@dataclass
class LineageGraph:
    """Complete in-memory lineage graph rebuilt on every load."""
    tables: Dict[str, TableNode] = field(default_factory=dict)
    roots: List[TableNode] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)
    databases: List[str] = field(default_factory=lambda: [ALL_DATABASES])

    def get(self, table_name: str) -> Optional[TableNode]:
        return self.tables.get(table_name)

    def resolve(self, table_name: str) -> TableNode:
        """Return the node, or an unresolved placeholder leaf for a dangling name."""
        node = self.tables.get(table_name)
        if node is None:
            return TableNode(name=table_name, resolved=False)
        return node

    def __contains__(self, table_name: str) -> bool:
        return table_name in self.tables

    def __len__(self) -> int:
        return len(self.tables)


@dataclass
class SchemaColumn:
    """A user-editable column description for a table."""
    column_name: str
    data_type: str = ""
    is_nullable: str = ""
    description: str = ""
    sample_values: str = ""
    business_meaning: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "column_name": self.column_name,
            "data_type": self.data_type,
            "is_nullable": self.is_nullable,
            "description": self.description,
            "sample_values": self.sample_values,
            "business_meaning": self.business_meaning,
        }

    @property
    def is_blank(self) -> bool:
        return not self.column_name or not self.column_name.strip()


@dataclass(frozen=True)
class ColumnLineageEdge:
    """Column-level lineage from a source column to a destination column."""
    destination_table: str
    destination_column: str
    source_table: Optional[str]
    source_column: Optional[str]
    transformation_type: TransformationType = TransformationType.UNKNOWN
    transformation_expr: Optional[str] = None
    notebook: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destination_table": self.destination_table,
            "destination_column": self.destination_column,
            "source_table": self.source_table,
            "source_column": self.source_column,
            "transformation_type": self.transformation_type.value,
            "transformation_expr": self.transformation_expr,
            "notebook": self.notebook,
        }


# View models produced by the traversal engine. They are immutable so a
# rendered view can be cached and compared without defensive copies.

@dataclass(frozen=True)
class TreeNodeView:
    """One row of the hierarchical tree browser."""
    name: str
    type: Optional[str]
    database: Optional[str]
    depth: int
    source_count: int
    notebook: Optional[str]
    expandable: bool
    expanded: bool
    resolved: bool = True
    children: Tuple["TreeNodeView", ...] = ()

    @property
    def display_name(self) -> str:
        return display_name(self.name)

    def walk(self):
        """Yield this node and all rendered descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class MorePlaceholder:
    """Summary leaf standing in for sources hidden by the width cap."""
    hidden_count: int

    @property
    def label(self) -> str:
        return f"+{self.hidden_count} more"


@dataclass(frozen=True)
class FlowNodeView:
    """A node box of the flow diagram."""
    name: str
    type: Optional[str]
    database: Optional[str]
    depth: int
    source_count: int
    resolved: bool = True
    children: Tuple["FlowNodeView", ...] = ()
    placeholder: Optional[MorePlaceholder] = None

    @property
    def display_name(self) -> str:
        return display_name(self.name)

    @property
    def truncated(self) -> bool:
        return self.placeholder is not None


@dataclass(frozen=True)
class SourceEntry:
    """One line of the paginated source list."""
    position: int
    name: str
    type: Optional[str]
    database: Optional[str]
    resolved: bool

    @property
    def display_name(self) -> str:
        return display_name(self.name)


@dataclass(frozen=True)
class SourcePage:
    """A page of a table's direct sources."""
    table_name: str
    page_index: int
    page_size: int
    page_count: int
    total: int
    entries: Tuple[SourceEntry, ...] = ()

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0

    @property
    def has_next(self) -> bool:
        return self.page_index < self.page_count - 1


@dataclass(frozen=True)
class DestinationRoots:
    """Root view listing destination tables; supports full recursion."""
    roots: Tuple[TableNode, ...]
    recursive: bool = True
    kind: str = "destinations"


@dataclass(frozen=True)
class MatchingSources:
    """Root view listing the source tables that matched a database filter.

    These roots are shown as leaves: their own lineage is not expanded.
    """
    roots: Tuple[TableNode, ...]
    database: str = ALL_DATABASES
    recursive: bool = False
    kind: str = "matching_sources"


RootView = Union[DestinationRoots, MatchingSources]
