"""
Centralized constants for DB Entity Generator.

This module contains the default configuration values, naming suffixes and
placeholder identifiers used while resolving names and emitting code. Keeping
them in one place makes the naming rules easy to audit and adjust.
"""

from typing import Dict, FrozenSet


# =============================================================================
# CORE CONFIGURATION
# =============================================================================

class DefaultConfig:
    """Default configuration values."""

    SCHEMA = "public"
    NAMESPACE = "generated_entities"
    CONTAINER_NAME = "AppDbContext"
    OUTPUT_DIR = "./entities"

    # Looked up in this order when no explicit connection string is given
    CONNECTION_STRING_KEYS = ("default", "postgres")
    CONNECTION_STRING_ENV_VAR = "DATABASE_URL"


# =============================================================================
# NAMING
# =============================================================================

class NamingSuffixes:
    """Fixed suffixes appended when a resolved name collides."""

    # Column property equal to its own class name
    PROPERTY = "Member"
    # Navigation colliding with a column property, the class or a sibling
    NAVIGATION = "Nav"
    # Inverse collection colliding with any claimed member
    COLLECTION = "Collection"


class Placeholders:
    """Synthesized identifiers for empty or fully invalid raw names."""

    CLASS_NAME = "Entity"
    MEMBER_NAME = "Column"
    SCHEMA_NAME = "Schema"
    MODULE_NAME = "entity"


# Trailing markers stripped from a foreign key column to get its disambiguation base
IDENTIFIER_MARKERS = ("Id", "ID")

# The only PostgreSQL schema whose name is omitted from storage mappings
DEFAULT_STORAGE_SCHEMA = "public"


# =============================================================================
# CODE GENERATION
# =============================================================================

class ContainerMembers:
    """Members every generated container class declares."""

    SESSION = "session"
    INIT = "__init__"
    MODEL_CREATING = "on_model_creating"
    REGISTRY_ARG = "mapper_registry"

    RESERVED: FrozenSet[str] = frozenset({SESSION, INIT, MODEL_CREATING})


TABLE_VARIABLE_SUFFIX = "_table"

# Generated containers reach SQLAlchemy through these module aliases only,
# so entity class names can never shadow a SQLAlchemy name
SQLALCHEMY_ALIAS = "sa"
SQLALCHEMY_ORM_ALIAS = "orm"

# Line length used by black when formatting generated modules
BLACK_LINE_LENGTH = 120


# =============================================================================
# POSTGRESQL TYPE ALIASES
# =============================================================================

# SQL-standard spellings mapped onto the catalog type names (pg_type.typname)
NATIVE_TYPE_ALIASES: Dict[str, str] = {
    "smallint": "int2",
    "smallserial": "int2",
    "serial2": "int2",
    "integer": "int4",
    "int": "int4",
    "serial": "int4",
    "serial4": "int4",
    "bigint": "int8",
    "bigserial": "int8",
    "serial8": "int8",
    "boolean": "bool",
    "character varying": "varchar",
    "character": "bpchar",
    "char": "bpchar",
    "decimal": "numeric",
    "real": "float4",
    "double precision": "float8",
    "time without time zone": "time",
    "time with time zone": "timetz",
    "timestamp without time zone": "timestamp",
    "timestamp with time zone": "timestamptz",
}
