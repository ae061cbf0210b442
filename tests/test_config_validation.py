"""
Tests for configuration loading, validation and connection string resolution.
"""

from argparse import Namespace
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch

import pytest

from db_entity_generator.config_validation import (
    GeneratorConfigSchema,
    is_valid_python_identifier,
    load_config,
    resolve_connection_string,
    validate_and_parse_config,
)
from db_entity_generator.exceptions import ConfigurationError


def cli_args(**overrides) -> Namespace:
    values = {
        "config": None,
        "connection_string": None,
        "schemas": None,
        "namespace": None,
        "container_name": None,
        "output_dir": None,
        "include_tables": None,
        "separate_by_schema": None,
        "verbose": False,
        "no_color": True,
        "command": "generate",
    }
    values.update(overrides)
    return Namespace(**values)


class TestIdentifierCheck(TestCase):
    """Test cases for is_valid_python_identifier function"""

    def test_identifiers(self):
        assert is_valid_python_identifier("AppDbContext")
        assert not is_valid_python_identifier("class")
        assert not is_valid_python_identifier("2fast")
        assert not is_valid_python_identifier("app-context")


class TestGeneratorConfigSchema(TestCase):
    """Test cases for the pydantic configuration schema"""

    def test_defaults(self):
        config = GeneratorConfigSchema()
        assert config.schemas == ["public"]
        assert config.namespace == "generated_entities"
        assert config.container_name == "AppDbContext"
        assert config.output_dir == "./entities"
        assert config.include_tables is None
        assert not config.separate_by_schema

    def test_comma_separated_lists(self):
        config = validate_and_parse_config({"schemas": "public, sales", "include_tables": "users,orders"})
        assert config.schemas == ["public", "sales"]
        assert config.include_tables == ["users", "orders"]

    def test_unknown_keys_are_ignored(self):
        config = validate_and_parse_config({"something_else": 1})
        assert config.container_name == "AppDbContext"

    def test_invalid_container_name(self):
        with self.assertRaises(ConfigurationError) as ctx:
            validate_and_parse_config({"container_name": "app-context"}, "config.yaml")
        assert "container_name" in ctx.exception.context
        assert ctx.exception.context["config_file"] == "config.yaml"

    def test_invalid_namespace(self):
        with self.assertRaises(ConfigurationError):
            validate_and_parse_config({"namespace": "my.2nd.package"})

    def test_dotted_namespace(self):
        assert validate_and_parse_config({"namespace": "app.data.entities"}).namespace == "app.data.entities"

    def test_separate_by_schema_with_single_schema(self):
        config = validate_and_parse_config({"separate_by_schema": True, "schemas": ["public"]})
        assert config.separate_by_schema
        assert config.schemas == ["public"]

    def test_empty_table_name(self):
        with self.assertRaises(ConfigurationError):
            validate_and_parse_config({"include_tables": ["users", "  "]})

    def test_empty_schema_list(self):
        with self.assertRaises(ConfigurationError):
            validate_and_parse_config({"schemas": []})


class TestLoadConfig(TestCase):
    """Test cases for load_config function"""

    def test_cli_only(self):
        config = load_config(None, cli_args(connection_string="dbname=shop", schemas=["sales"]))
        assert config.connection_string == "dbname=shop"
        assert config.schemas == ["sales"]
        assert Path(config.output_dir).is_absolute()

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_config("/nonexistent/generator.yaml", cli_args())


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "generator.yaml"
    path.write_text(
        "connection_strings:\n"
        "  reporting: dbname=reporting\n"
        "  default: dbname=shop\n"
        "schemas: [public, sales]\n"
        "container_name: ShopContext\n"
        "namespace: shop.entities\n"
        f"output_dir: {tmp_path / 'out'}\n",
        encoding="utf-8",
    )
    return path


def test_yaml_values_are_loaded(config_file, tmp_path):
    config = load_config(str(config_file), cli_args())
    assert config.schemas == ["public", "sales"]
    assert config.container_name == "ShopContext"
    assert config.namespace == "shop.entities"
    assert config.output_dir == str((tmp_path / "out").resolve())


def test_cli_overrides_yaml(config_file):
    config = load_config(str(config_file), cli_args(container_name="OtherContext", separate_by_schema=True))
    assert config.container_name == "OtherContext"
    assert config.separate_by_schema
    assert config.namespace == "shop.entities"


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("schemas: [public\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(str(path), cli_args())


def test_non_mapping_yaml_is_ignored(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- public\n- sales\n", encoding="utf-8")
    config = load_config(str(path), cli_args())
    assert config.schemas == ["public"]


class TestResolveConnectionString(TestCase):
    """Test cases for resolve_connection_string function"""

    def test_explicit_connection_string_wins(self):
        config = GeneratorConfigSchema(
            connection_string="dbname=explicit",
            connection_strings={"default": "dbname=default"},
        )
        assert resolve_connection_string(config) == "dbname=explicit"

    def test_default_then_postgres_then_first(self):
        assert resolve_connection_string(GeneratorConfigSchema(
            connection_strings={"postgres": "dbname=pg", "default": "dbname=default"},
        )) == "dbname=default"
        assert resolve_connection_string(GeneratorConfigSchema(
            connection_strings={"reporting": "dbname=reporting", "postgres": "dbname=pg"},
        )) == "dbname=pg"
        assert resolve_connection_string(GeneratorConfigSchema(
            connection_strings={"reporting": "dbname=reporting", "archive": "dbname=archive"},
        )) == "dbname=reporting"

    def test_environment_variable(self):
        with patch.dict("os.environ", {"DATABASE_URL": "postgresql://localhost/shop"}):
            assert resolve_connection_string(GeneratorConfigSchema()) == "postgresql://localhost/shop"

    def test_nothing_configured(self):
        with patch.dict("os.environ", {}, clear=True):
            with self.assertRaises(ConfigurationError):
                resolve_connection_string(GeneratorConfigSchema())
