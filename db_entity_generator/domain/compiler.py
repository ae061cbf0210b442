"""
Per-table model compilation.

``compile_entity`` is phase two of a generation run: a pure, total transform
from one resolved table descriptor plus the frozen name lookup to an
``EntityModel``. It never raises for unrecognized native types; those
degrade to the untyped fallback scalar.
"""

import logging
from typing import List, Optional

from ..constants import DEFAULT_STORAGE_SCHEMA
from .code_models import (
    CollectionModel,
    ColumnMapping,
    EntityModel,
    IndexDeclaration,
    KeyDeclaration,
    NavigationModel,
    PropertyModel,
    RelationshipWiring,
    StorageMapping,
)
from .models import ColumnDescriptor, ForeignKeyDescriptor, TableDescriptor
from .resolver import ResolvedNames
from .type_mapping import map_native_type

logger = logging.getLogger(__name__)


def storage_schema(schema: str) -> Optional[str]:
    """Schema to spell out in a storage mapping; the default schema is omitted."""
    return None if schema == DEFAULT_STORAGE_SCHEMA else schema


def compile_property(table: TableDescriptor, column: ColumnDescriptor, names: ResolvedNames) -> PropertyModel:
    return PropertyModel(
        name=names.property_name(table.key, column.name),
        column_name=column.name,
        scalar=map_native_type(column.data_type),
        is_nullable=column.is_nullable,
        is_primary_key=column.name in table.primary_key,
    )


def compile_navigation(table: TableDescriptor, fk: ForeignKeyDescriptor, names: ResolvedNames) -> NavigationModel:
    source_columns = [table.get_column(name) for name in fk.source_columns]
    # The reference is optional unless every source column is known to be NOT NULL
    is_optional = any(column is None or column.is_nullable for column in source_columns)
    return NavigationModel(
        name=names.navigation_name(fk),
        target_class=names.class_name(fk.target_key),
        target_module=names.module_name(fk.target_key),
        target_schema=fk.target_schema,
        source_columns=tuple(fk.source_columns),
        target_columns=tuple(fk.target_columns),
        constraint_name=fk.constraint_name,
        inverse_name=names.collection_name(fk),
        is_optional=is_optional,
        is_self_reference=fk.is_self_reference,
    )


def compile_collection(fk: ForeignKeyDescriptor, names: ResolvedNames) -> CollectionModel:
    return CollectionModel(
        name=names.collection_name(fk),
        source_class=names.class_name(fk.source_key),
        source_module=names.module_name(fk.source_key),
        source_schema=fk.source_schema,
        source_columns=tuple(fk.source_columns),
        target_columns=tuple(fk.target_columns),
        constraint_name=fk.constraint_name,
        inverse_name=names.navigation_name(fk),
    )


def compile_storage(table: TableDescriptor) -> StorageMapping:
    return StorageMapping(
        table_name=table.name,
        schema=storage_schema(table.schema),
        kind=table.kind,
        is_partitioned=table.is_partitioned,
        is_keyless=table.is_view or not table.primary_key,
    )


def compile_key(table: TableDescriptor) -> Optional[KeyDeclaration]:
    """Key declaration for a table; views and tables without a primary key get none."""
    if table.is_view or not table.primary_key:
        return None
    return KeyDeclaration(columns=tuple(table.primary_key), constraint_name=table.primary_key_name)


def compile_column_mapping(prop: PropertyModel, column: ColumnDescriptor) -> ColumnMapping:
    max_length = column.max_length if prop.scalar.length_bounded else None
    return ColumnMapping(
        property_name=prop.name,
        column_name=column.name,
        scalar=prop.scalar,
        is_required=not column.is_nullable,
        default_sql=column.default,
        max_length=max_length,
    )


def compile_relationship(navigation: NavigationModel, fk: ForeignKeyDescriptor) -> RelationshipWiring:
    return RelationshipWiring(
        navigation_name=navigation.name,
        collection_name=navigation.inverse_name,
        target_class=navigation.target_class,
        target_module=navigation.target_module,
        target_schema=storage_schema(fk.target_schema),
        target_table=fk.target_table,
        source_columns=navigation.source_columns,
        target_columns=navigation.target_columns,
        constraint_name=fk.constraint_name,
    )


def compile_entity(table: TableDescriptor, names: ResolvedNames) -> EntityModel:
    """
    Compile one resolved table into its entity model.

    Args:
        table: Table descriptor that belongs to the resolved set
        names: Frozen name lookup produced by ``resolve_names``

    Returns:
        The compiled entity model
    """
    class_name = names.class_name(table.key)

    properties = tuple(compile_property(table, column, names) for column in table.columns)

    outgoing: List[ForeignKeyDescriptor] = sorted(table.foreign_keys, key=lambda fk: fk.constraint_name)
    incoming: List[ForeignKeyDescriptor] = sorted(table.referencing_foreign_keys, key=lambda fk: fk.identity)
    navigations = tuple(compile_navigation(table, fk, names) for fk in outgoing)
    collections = tuple(compile_collection(fk, names) for fk in incoming)

    column_mappings = tuple(
        compile_column_mapping(prop, column) for prop, column in zip(properties, table.columns)
    )
    indexes = tuple(
        IndexDeclaration(name=index.name, columns=tuple(index.columns), is_unique=index.is_unique)
        for index in table.indexes
    )
    relationships = tuple(compile_relationship(nav, fk) for nav, fk in zip(navigations, outgoing))

    logger.debug(
        f"Compiled {class_name}: {len(properties)} properties, "
        f"{len(navigations)} navigations, {len(collections)} collections"
    )
    return EntityModel(
        class_name=class_name,
        module_name=names.module_name(table.key),
        schema=table.schema,
        table_name=table.name,
        properties=properties,
        navigations=navigations,
        collections=collections,
        storage=compile_storage(table),
        key=compile_key(table),
        column_mappings=column_mappings,
        indexes=indexes,
        relationships=relationships,
    )
