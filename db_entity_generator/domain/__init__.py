"""
Domain module for DB Entity Generator.

Schema metadata, identifier resolution, model compilation and container
aggregation. Nothing in here performs I/O.
"""

from .models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    ObjectKind,
    TableDescriptor,
    link_foreign_keys,
)

from .code_models import (
    AccessorModel,
    CollectionModel,
    ColumnMapping,
    ContainerModel,
    ContainerUpdate,
    EntityModel,
    GeneratedFile,
    IndexDeclaration,
    KeyDeclaration,
    NavigationModel,
    PropertyModel,
    RelationshipWiring,
    ScalarType,
    StorageMapping,
)

from .naming import (
    base_identifier,
    disambiguation_base,
    pluralize,
    sanitize_identifier,
    to_snake_case,
)

from .resolver import ResolvedNames, resolve_names
from .compiler import compile_entity
from .aggregator import build_container_model, missing_accessors

__all__ = [
    # Metadata
    'ColumnDescriptor',
    'ForeignKeyDescriptor',
    'IndexDescriptor',
    'ObjectKind',
    'TableDescriptor',
    'link_foreign_keys',

    # Code models
    'AccessorModel',
    'CollectionModel',
    'ColumnMapping',
    'ContainerModel',
    'ContainerUpdate',
    'EntityModel',
    'GeneratedFile',
    'IndexDeclaration',
    'KeyDeclaration',
    'NavigationModel',
    'PropertyModel',
    'RelationshipWiring',
    'ScalarType',
    'StorageMapping',

    # Naming
    'base_identifier',
    'disambiguation_base',
    'pluralize',
    'sanitize_identifier',
    'to_snake_case',

    # Phases
    'ResolvedNames',
    'resolve_names',
    'compile_entity',
    'build_container_model',
    'missing_accessors',
]
