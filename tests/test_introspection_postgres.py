"""
Integration tests for the PostgreSQL metadata provider.

They run against a disposable PostgreSQL container (see conftest.py) and are
skipped when no container runtime is available.
"""

import pytest

from db_entity_generator.domain.models import ObjectKind
from db_entity_generator.exceptions import DatabaseConnectionError
from db_entity_generator.generator import EntityGenerator
from db_entity_generator.introspection_postgres import PostgresMetadataProvider

from schema_factories import find

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def public_tables(loaded_schema):
    return PostgresMetadataProvider(loaded_schema["dsn"]).get_tables("public")


def test_lists_tables_views_and_partitioned_parents(public_tables):
    assert [t.name for t in public_tables] == [
        "measurement", "order", "pensioner", "pensioner_names", "uploaded_file",
    ]
    assert find(public_tables, "pensioner_names").kind is ObjectKind.VIEW
    assert find(public_tables, "measurement").is_partitioned


def test_columns(public_tables):
    pensioner = find(public_tables, "pensioner")
    assert [c.name for c in pensioner.columns] == [
        "id", "full_name", "photo_file_id", "signature_file_id", "registered_at",
    ]
    assert pensioner.get_column("full_name").data_type == "text"
    assert not pensioner.get_column("full_name").is_nullable
    assert pensioner.get_column("photo_file_id").is_nullable
    assert pensioner.get_column("registered_at").data_type == "timestamptz"
    assert pensioner.get_column("registered_at").default == "now()"
    assert pensioner.get_column("id").default.startswith("nextval(")

    uploaded_file = find(public_tables, "uploaded_file")
    assert uploaded_file.get_column("file_name").max_length == 255
    assert find(public_tables, "order").get_column("note").max_length == 40


def test_primary_keys(public_tables):
    pensioner = find(public_tables, "pensioner")
    assert pensioner.primary_key == ["id"]
    assert pensioner.primary_key_name == "pensioner_pkey"
    assert find(public_tables, "measurement").primary_key == []


def test_foreign_keys_are_linked(public_tables):
    pensioner = find(public_tables, "pensioner")
    assert sorted(fk.constraint_name for fk in pensioner.foreign_keys) == [
        "fk_pensioner_photo_file", "fk_pensioner_signature_file",
    ]
    photo = next(fk for fk in pensioner.foreign_keys if fk.constraint_name == "fk_pensioner_photo_file")
    assert photo.source_columns == ["photo_file_id"]
    assert photo.target_key == ("public", "uploaded_file")
    assert photo.target_columns == ["id"]
    assert len(find(public_tables, "uploaded_file").referencing_foreign_keys) == 2


def test_expression_indexes_are_skipped(public_tables):
    indexes = {index.name: index for index in find(public_tables, "pensioner").indexes}
    assert list(indexes) == ["ix_pensioner_full_name"]
    assert indexes["ix_pensioner_full_name"].columns == ["full_name"]
    assert not indexes["ix_pensioner_full_name"].is_unique


def test_multiple_schemas(loaded_schema):
    tables = PostgresMetadataProvider(loaded_schema["dsn"]).get_tables(["public", "sales"])
    sales_order = find(tables, "order", "sales")
    assert sales_order.primary_key == ["id", "line"]
    assert sales_order.foreign_keys[0].target_key == ("public", "order")

    names = EntityGenerator(tables).names
    assert names.class_name(("public", "order")) == "PublicOrder"
    assert names.class_name(("sales", "order")) == "SalesOrder"


def test_table_allow_list(loaded_schema):
    tables = PostgresMetadataProvider(loaded_schema["dsn"]).get_tables(
        ["public", "sales"], table_names=["sales.order", "uploaded_file"],
    )
    assert [t.qualified_name for t in tables] == ["public.uploaded_file", "sales.order"]
    # The referenced public.order is not part of the set
    assert find(tables, "order", "sales").foreign_keys == []


def test_connection_failure():
    provider = PostgresMetadataProvider("host=127.0.0.1 port=1 user=nobody password=secret connect_timeout=1")
    with pytest.raises(DatabaseConnectionError) as exc_info:
        provider.get_tables()
    assert "secret" not in str(exc_info.value)
