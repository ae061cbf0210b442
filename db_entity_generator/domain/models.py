"""
Schema metadata models for DB Entity Generator.

These dataclasses hold the normalized facts produced by a metadata provider:
tables, columns, primary keys, foreign keys and indexes. Apart from the
resolver-filled class name fields, which are write-once, they are treated as
immutable for the duration of a generation run.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..exceptions import NameResolutionError

logger = logging.getLogger(__name__)

TableKey = Tuple[str, str]
ForeignKeyIdentity = Tuple[str, str, str]


class ObjectKind(Enum):
    """Kinds of catalog objects that are mapped to entities."""

    TABLE = "table"
    VIEW = "view"
    MATERIALIZED_VIEW = "materialized_view"

    @property
    def is_view(self) -> bool:
        return self is not ObjectKind.TABLE


def _assign_once(owner: object, attribute: str, value: str, label: str) -> None:
    current = getattr(owner, attribute)
    if current is not None and current != value:
        raise NameResolutionError(
            f"Resolved name '{attribute}' is already set to '{current}', refusing to change it to '{value}'",
            table=label,
            field=attribute,
        )
    setattr(owner, attribute, value)


@dataclass
class ColumnDescriptor:
    """A single column of a table or view."""

    name: str
    data_type: str
    is_nullable: bool = True
    max_length: Optional[int] = None
    default: Optional[str] = None


@dataclass
class IndexDescriptor:
    """A non-primary index with its ordered key columns."""

    name: str
    columns: List[str] = field(default_factory=list)
    is_unique: bool = False


@dataclass(eq=False)
class ForeignKeyDescriptor:
    """
    A foreign key constraint between two tables of the processed set.

    Source and target column lists are positionally paired, which makes
    composite keys explicit. The class name fields stay ``None`` until the
    identifier resolver has seen both endpoints.
    """

    constraint_name: str
    source_schema: str
    source_table: str
    source_columns: List[str]
    target_schema: str
    target_table: str
    target_columns: List[str]

    source_class_name: Optional[str] = None
    target_class_name: Optional[str] = None
    target_class_name_plural: Optional[str] = None

    def __post_init__(self):
        if not self.source_columns:
            raise ValueError(f"Foreign key '{self.constraint_name}' has no source columns")
        if len(self.source_columns) != len(self.target_columns):
            raise ValueError(
                f"Foreign key '{self.constraint_name}' pairs {len(self.source_columns)} source columns "
                f"with {len(self.target_columns)} target columns"
            )

    @property
    def source_key(self) -> TableKey:
        return (self.source_schema, self.source_table)

    @property
    def target_key(self) -> TableKey:
        return (self.target_schema, self.target_table)

    @property
    def identity(self) -> ForeignKeyIdentity:
        """Stable key of this constraint across the whole table set."""
        return (self.source_schema, self.source_table, self.constraint_name)

    @property
    def is_self_reference(self) -> bool:
        return self.source_key == self.target_key

    def assign_class_names(self, source_class: str, target_class: str, target_plural: str) -> None:
        label = f"{self.source_schema}.{self.source_table}:{self.constraint_name}"
        _assign_once(self, "source_class_name", source_class, label)
        _assign_once(self, "target_class_name", target_class, label)
        _assign_once(self, "target_class_name_plural", target_plural, label)


@dataclass(eq=False)
class TableDescriptor:
    """A table, view or materialized view and everything mapped from it."""

    schema: str
    name: str
    columns: List[ColumnDescriptor] = field(default_factory=list)
    primary_key: List[str] = field(default_factory=list)
    primary_key_name: Optional[str] = None
    foreign_keys: List[ForeignKeyDescriptor] = field(default_factory=list)
    referencing_foreign_keys: List[ForeignKeyDescriptor] = field(default_factory=list)
    indexes: List[IndexDescriptor] = field(default_factory=list)
    kind: ObjectKind = ObjectKind.TABLE
    is_partitioned: bool = False
    class_name: Optional[str] = None

    @property
    def key(self) -> TableKey:
        return (self.schema, self.name)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"

    @property
    def is_view(self) -> bool:
        return self.kind.is_view

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def assign_class_name(self, class_name: str) -> None:
        _assign_once(self, "class_name", class_name, self.qualified_name)


def link_foreign_keys(tables: List[TableDescriptor]) -> List[TableDescriptor]:
    """
    Restrict foreign keys to the given table set and build the incoming lists.

    Foreign keys whose target is not part of ``tables`` are dropped. Every
    table's ``referencing_foreign_keys`` is rebuilt from the outgoing lists,
    so the two sides always describe the same constraint objects.

    Args:
        tables: The complete table set of one generation run

    Returns:
        The same list, linked in place
    """
    by_key: Dict[TableKey, TableDescriptor] = {table.key: table for table in tables}

    for table in tables:
        table.referencing_foreign_keys = []

    for table in tables:
        kept = []
        for fk in table.foreign_keys:
            target = by_key.get(fk.target_key)
            if target is None:
                logger.debug(
                    f"Dropping foreign key {fk.constraint_name} on {table.qualified_name}: "
                    f"target {fk.target_schema}.{fk.target_table} is not part of the table set"
                )
                continue
            kept.append(fk)
            target.referencing_foreign_keys.append(fk)
        table.foreign_keys = kept

    return tables
