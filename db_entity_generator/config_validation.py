import keyword
import logging
import os
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from db_entity_generator.constants import DefaultConfig
from db_entity_generator.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def is_valid_python_identifier(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


class GeneratorConfigSchema(BaseModel):
    """Settings for one generator run, read from YAML and overridden from the command line."""

    connection_string: Optional[str] = Field(
        default=None,
        description="libpq connection string or postgresql:// URL. Takes precedence over connection_strings.",
    )
    connection_strings: Dict[str, str] = Field(
        default_factory=dict,
        description="Named connection strings; 'default', then 'postgres', then the first entry is used.",
    )
    schemas: List[str] = Field(
        default_factory=lambda: [DefaultConfig.SCHEMA],
        min_length=1,
        description="Schemas to introspect.",
    )
    namespace: str = Field(
        DefaultConfig.NAMESPACE,
        min_length=1,
        description="Dotted Python package name of the generated code.",
    )
    container_name: str = Field(
        DefaultConfig.CONTAINER_NAME,
        min_length=1,
        description="Class name of the generated data context.",
    )
    output_dir: str = Field(
        DefaultConfig.OUTPUT_DIR,
        min_length=1,
        description="Directory the generated package is written to.",
    )
    include_tables: Optional[List[str]] = Field(
        default=None,
        description="Optional list of table names ('name' or 'schema.name') to include.",
    )
    separate_by_schema: bool = Field(
        default=False,
        description="Place entity modules in one subpackage per schema.",
    )

    model_config = ConfigDict(extra="ignore")

    @field_validator("container_name")
    @classmethod
    def check_valid_identifier(cls, v: str) -> str:
        """Validate the container class name is a valid Python identifier."""
        if not is_valid_python_identifier(v):
            raise ValueError(f"'{v}' is not a valid Python identifier or is a reserved keyword.")
        return v

    @field_validator("namespace")
    @classmethod
    def check_valid_package_path(cls, v: str) -> str:
        """Validate namespace is a dotted path of Python identifiers."""
        if not all(is_valid_python_identifier(part) for part in v.split(".")):
            raise ValueError(f"'{v}' is not a valid dotted Python package name.")
        return v

    @field_validator("include_tables", "schemas", mode="before")
    @classmethod
    def check_name_list(cls, v: Optional[List[Any]]) -> Optional[List[str]]:
        """Accept a list or a comma separated string of non-blank names."""
        if v is None:
            return None
        items = v.split(",") if isinstance(v, str) else v
        if not isinstance(items, list):
            raise ValueError("Expected a list of names.")
        names = [item.strip() if isinstance(item, str) else item for item in items]
        for position, name in enumerate(names):
            if not isinstance(name, str) or not name:
                raise ValueError(f"Entry {position} must be a non-blank name, got {items[position]!r}")
        return names


def validate_and_parse_config(config_dict: Dict[str, Any], config_path: Optional[str] = None) -> GeneratorConfigSchema:
    """
    Build a GeneratorConfigSchema from a plain mapping.

    Every failing field ends up in the error context, keyed by its location.
    """
    try:
        return GeneratorConfigSchema.model_validate(config_dict)
    except ValidationError as e:
        problems = {
            " -> ".join(str(part) for part in issue.get("loc", ())) or "<config>": issue.get("msg", "invalid value")
            for issue in e.errors()
        }
        for location, reason in problems.items():
            logger.error(f"Invalid configuration value '{location}': {reason}")
        raise ConfigurationError(
            "Configuration validation failed",
            config_file=config_path,
            context=problems,
        ) from e


def read_yaml_config(config_path: str) -> Dict[str, Any]:
    """Return the mapping stored in a YAML file, or an empty dict when the document is not a mapping."""
    path = Path(config_path)
    if not path.is_file():
        raise ConfigurationError(f"Config file not found at {config_path}", config_file=config_path)
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML file {config_path}: {e}", config_file=config_path) from e

    if isinstance(document, dict):
        logger.debug(f"Read {len(document)} settings from {config_path}")
        return document
    if document:
        logger.warning(f"Ignoring {config_path}: expected a mapping at the top level")
    return {}


def load_config(config_path: Optional[str], cli_args: Namespace) -> GeneratorConfigSchema:
    """
    Merge the YAML file (if any) with the command line and validate the result.

    Command line options win over the file whenever they were given.
    """
    raw_config: Dict[str, Any] = read_yaml_config(config_path) if config_path else {}

    from_cli = {
        key: value
        for key, value in vars(cli_args).items()
        if value is not None and key in GeneratorConfigSchema.model_fields
    }
    if from_cli:
        logger.debug(f"Command line sets: {', '.join(sorted(from_cli))}")
    raw_config.update(from_cli)

    config = validate_and_parse_config(raw_config, config_path)
    config.output_dir = str(Path(config.output_dir).resolve())
    return config


def resolve_connection_string(config: GeneratorConfigSchema) -> str:
    """
    Pick the connection string to introspect with.

    Order: the explicit ``connection_string``, then ``connection_strings``
    under ``default``, then ``postgres``, then its first entry, then the
    ``DATABASE_URL`` environment variable.
    """
    if config.connection_string:
        return config.connection_string

    for key in DefaultConfig.CONNECTION_STRING_KEYS:
        if config.connection_strings.get(key):
            logger.debug(f"Using connection string '{key}'")
            return config.connection_strings[key]
    for key, value in config.connection_strings.items():
        if value:
            logger.debug(f"Using connection string '{key}'")
            return value

    from_env = os.environ.get(DefaultConfig.CONNECTION_STRING_ENV_VAR)
    if from_env:
        logger.debug(f"Using connection string from ${DefaultConfig.CONNECTION_STRING_ENV_VAR}")
        return from_env

    raise ConfigurationError(
        "No connection string configured",
        suggestions=[
            "Pass --connection",
            "Add connection_strings.default to the configuration file",
            f"Set the {DefaultConfig.CONNECTION_STRING_ENV_VAR} environment variable",
        ],
    )
