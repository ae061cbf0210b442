"""
Code models compiled from resolved table descriptors.

An ``EntityModel`` describes everything needed to emit one entity module and
its configuration block inside the container: the annotated members and the
ordered fluent configuration directives.
"""

from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional, Tuple, Union

from .models import ObjectKind


@dataclass(frozen=True)
class ScalarType:
    """
    A Python scalar type paired with its SQLAlchemy column type.

    ``imports`` lists ``(module, name)`` pairs the annotation needs; a ``None``
    name means a plain ``import module``.
    """

    annotation: str
    sql_type: str
    sql_type_options: Tuple[Tuple[str, Any], ...] = ()
    imports: Tuple[Tuple[str, Optional[str]], ...] = ()
    length_bounded: bool = False
    nullable_capable: bool = False
    untyped: bool = False


@dataclass(frozen=True)
class PropertyModel:
    """Column-backed attribute of an entity."""

    name: str
    column_name: str
    scalar: ScalarType
    is_nullable: bool
    is_primary_key: bool = False

    @property
    def annotation(self) -> str:
        if self.is_nullable and not (self.scalar.nullable_capable or self.scalar.untyped):
            return f"Optional[{self.scalar.annotation}]"
        return self.scalar.annotation


@dataclass(frozen=True)
class NavigationModel:
    """Single-valued reference following an outgoing foreign key."""

    name: str
    target_class: str
    target_module: str
    target_schema: str
    source_columns: Tuple[str, ...]
    target_columns: Tuple[str, ...]
    constraint_name: str
    inverse_name: str
    is_optional: bool = True
    is_self_reference: bool = False

    @property
    def annotation(self) -> str:
        if self.is_optional:
            return f"Optional[{self.target_class}]"
        return self.target_class


@dataclass(frozen=True)
class CollectionModel:
    """Multi-valued reverse side of a navigation, declared on the referenced entity."""

    name: str
    source_class: str
    source_module: str
    source_schema: str
    source_columns: Tuple[str, ...]
    target_columns: Tuple[str, ...]
    constraint_name: str
    inverse_name: str

    @property
    def annotation(self) -> str:
        return f"List[{self.source_class}]"


# --- Fluent configuration directives ---

@dataclass(frozen=True)
class StorageMapping:
    """Where the entity is stored; views and materialized views map keyless."""

    table_name: str
    schema: Optional[str]
    kind: ObjectKind = ObjectKind.TABLE
    is_partitioned: bool = False
    is_keyless: bool = False

    @property
    def is_view(self) -> bool:
        return self.kind.is_view


@dataclass(frozen=True)
class KeyDeclaration:
    columns: Tuple[str, ...]
    constraint_name: Optional[str] = None

    @property
    def is_composite(self) -> bool:
        return len(self.columns) > 1


@dataclass(frozen=True)
class ColumnMapping:
    property_name: str
    column_name: str
    scalar: ScalarType
    is_required: bool
    default_sql: Optional[str] = None
    max_length: Optional[int] = None


@dataclass(frozen=True)
class IndexDeclaration:
    name: str
    columns: Tuple[str, ...]
    is_unique: bool = False


@dataclass(frozen=True)
class RelationshipWiring:
    """One outgoing foreign key wired to both of its navigation ends."""

    navigation_name: str
    collection_name: str
    target_class: str
    target_module: str
    target_schema: Optional[str]
    target_table: str
    source_columns: Tuple[str, ...]
    target_columns: Tuple[str, ...]
    constraint_name: str


ConfigurationDirective = Union[
    StorageMapping, KeyDeclaration, ColumnMapping, IndexDeclaration, RelationshipWiring
]


@dataclass(frozen=True)
class EntityModel:
    """Complete compiled model of one table or view."""

    class_name: str
    module_name: str
    schema: str
    table_name: str
    properties: Tuple[PropertyModel, ...]
    navigations: Tuple[NavigationModel, ...]
    collections: Tuple[CollectionModel, ...]
    storage: StorageMapping
    key: Optional[KeyDeclaration] = None
    column_mappings: Tuple[ColumnMapping, ...] = ()
    indexes: Tuple[IndexDeclaration, ...] = ()
    relationships: Tuple[RelationshipWiring, ...] = ()

    @property
    def configuration(self) -> Tuple[ConfigurationDirective, ...]:
        """Configuration directives in emission order."""
        directives = [self.storage]
        if self.key is not None:
            directives.append(self.key)
        directives.extend(self.column_mappings)
        directives.extend(self.indexes)
        directives.extend(self.relationships)
        return tuple(directives)

    @property
    def member_names(self) -> Tuple[str, ...]:
        return tuple(
            [prop.name for prop in self.properties]
            + [nav.name for nav in self.navigations]
            + [coll.name for coll in self.collections]
        )


@dataclass(frozen=True)
class AccessorModel:
    """Named collection accessor exposed by the container for one entity."""

    name: str
    entity_class: str
    module_name: str
    schema: str


@dataclass(frozen=True)
class ContainerModel:
    name: str
    namespace: str
    accessors: Tuple[AccessorModel, ...]
    entities: Tuple[EntityModel, ...] = field(default=())
    separate_by_schema: bool = False


class GeneratedFile(NamedTuple):
    filename: str
    content: str


class ContainerUpdate(NamedTuple):
    filename: str
    content: str
    changed: bool
