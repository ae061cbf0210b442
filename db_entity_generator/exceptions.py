"""
Exceptions raised by DB Entity Generator.

Each error type has a stable code and a default list of recovery hints. The
keyword arguments a subclass names in ``context_keys`` are collected into the
error context so the CLI can print where the failure happened.
"""

import re
from typing import Any, Dict, List, Optional, Tuple


class DbEntityGeneratorError(Exception):
    """Root of the generator's error hierarchy."""

    error_code: Optional[str] = None
    default_suggestions: Tuple[str, ...] = ()
    context_keys: Tuple[str, ...] = ()

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        error_code: Optional[str] = None,
        **details: Any,
    ):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})
        for key in self.context_keys:
            if details.get(key):
                self.context[key] = self.clean_context_value(key, details[key])
        self.suggestions = list(suggestions) if suggestions else list(self.default_suggestions)
        if error_code:
            self.error_code = error_code

    def clean_context_value(self, key: str, value: Any) -> Any:
        return value

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.append(f"Error Code: {self.error_code}")
        if self.context:
            parts.append("Context:")
            parts.extend(f"  {key}: {value}" for key, value in self.context.items())
        if self.suggestions:
            parts.append("Suggestions:")
            parts.extend(f"  • {hint}" for hint in self.suggestions)
        return "\n".join(parts)


class ConfigurationError(DbEntityGeneratorError):
    """The YAML file or command line options are unusable."""

    error_code = "CONFIG_ERROR"
    context_keys = ("config_file",)
    default_suggestions = (
        "Check the YAML syntax of the configuration file",
        "Make sure a connection string is available",
        "Review the options given on the command line",
    )


class SchemaIntrospectionError(DbEntityGeneratorError):
    """Reading the PostgreSQL catalog failed after a connection was made."""

    error_code = "INTROSPECTION_ERROR"
    context_keys = ("schema", "table")
    default_suggestions = (
        "Confirm the requested schemas and tables exist",
        "Grant the connecting role read access to pg_catalog",
        "Narrow the run with --schema and --tables",
    )


class DatabaseConnectionError(DbEntityGeneratorError):
    """No connection could be opened. Passwords are masked in the context."""

    error_code = "DATABASE_CONNECTION_ERROR"
    context_keys = ("database_url",)
    default_suggestions = (
        "Make sure the PostgreSQL server is reachable",
        "Double check the user name and password",
    )

    def clean_context_value(self, key: str, value: Any) -> Any:
        return self._mask_credentials(value)

    @staticmethod
    def _mask_credentials(url: str) -> str:
        hidden = re.sub(r'://([^:/@]+):([^@]+)@', r'://\1:***@', url)
        return re.sub(r'(password\s*=\s*)\S+', r'\1***', hidden, flags=re.IGNORECASE)


class NameResolutionError(DbEntityGeneratorError):
    """A resolved name was assigned twice, or looked up for a table outside the resolved set."""

    error_code = "NAME_RESOLUTION_ERROR"
    context_keys = ("table", "field")
    default_suggestions = (
        "Resolve names once per table set and reuse the result",
        "Only ask for names of tables that were part of the resolved set",
    )


class ContainerMergeError(DbEntityGeneratorError):
    """The existing container module could not be parsed or lacks the container class."""

    error_code = "CONTAINER_MERGE_ERROR"
    context_keys = ("container_name",)
    default_suggestions = (
        "Pass the --container-name used when the file was generated",
        "Run 'generate' to rebuild the container module",
    )
