import logging
from typing import Dict, List, Optional, Sequence, Union

import psycopg2

from db_entity_generator.domain.models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    ObjectKind,
    TableDescriptor,
    link_foreign_keys,
)
from db_entity_generator.exceptions import DatabaseConnectionError, SchemaIntrospectionError

logger = logging.getLogger(__name__)

RELKIND_TO_OBJECT_KIND = {
    "r": ObjectKind.TABLE,
    "p": ObjectKind.TABLE,
    "v": ObjectKind.VIEW,
    "m": ObjectKind.MATERIALIZED_VIEW,
}

# --- Catalog queries ---

# Child partitions are excluded; their partitioned parent is mapped instead
TABLES_QUERY = """
    SELECT n.nspname, c.relname, c.relkind
    FROM pg_catalog.pg_class c
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = ANY(%s)
      AND c.relkind IN ('r', 'p', 'v', 'm')
      AND NOT EXISTS (SELECT 1 FROM pg_catalog.pg_inherits i WHERE i.inhrelid = c.oid)
    ORDER BY n.nspname, c.relname
"""

COLUMNS_QUERY = """
    SELECT a.attname,
           t.typname,
           NOT a.attnotnull,
           CASE WHEN t.typname IN ('varchar', 'bpchar') AND a.atttypmod > 4 THEN a.atttypmod - 4 END,
           pg_catalog.pg_get_expr(d.adbin, d.adrelid)
    FROM pg_catalog.pg_attribute a
    JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    JOIN pg_catalog.pg_type t ON t.oid = a.atttypid
    LEFT JOIN pg_catalog.pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
    WHERE n.nspname = %s AND c.relname = %s AND a.attnum > 0 AND NOT a.attisdropped
    ORDER BY a.attnum
"""

PRIMARY_KEY_QUERY = """
    SELECT con.conname, a.attname
    FROM pg_catalog.pg_constraint con
    JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    CROSS JOIN LATERAL unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord)
    JOIN pg_catalog.pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
    WHERE con.contype = 'p' AND n.nspname = %s AND c.relname = %s
    ORDER BY k.ord
"""

FOREIGN_KEYS_QUERY = """
    SELECT con.conname, tn.nspname, tc.relname, sa.attname, ta.attname
    FROM pg_catalog.pg_constraint con
    JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    JOIN pg_catalog.pg_class tc ON tc.oid = con.confrelid
    JOIN pg_catalog.pg_namespace tn ON tn.oid = tc.relnamespace
    CROSS JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(source_attnum, target_attnum, ord)
    JOIN pg_catalog.pg_attribute sa ON sa.attrelid = con.conrelid AND sa.attnum = k.source_attnum
    JOIN pg_catalog.pg_attribute ta ON ta.attrelid = con.confrelid AND ta.attnum = k.target_attnum
    WHERE con.contype = 'f' AND n.nspname = %s AND c.relname = %s
    ORDER BY con.conname, k.ord
"""

# Expression columns have attnum 0 and come back with a NULL name
INDEXES_QUERY = """
    SELECT ic.relname, ix.indisunique, a.attname
    FROM pg_catalog.pg_index ix
    JOIN pg_catalog.pg_class c ON c.oid = ix.indrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    JOIN pg_catalog.pg_class ic ON ic.oid = ix.indexrelid
    CROSS JOIN LATERAL unnest(ix.indkey::int2[]) WITH ORDINALITY AS k(attnum, ord)
    LEFT JOIN pg_catalog.pg_attribute a ON a.attrelid = ix.indrelid AND a.attnum = k.attnum
    WHERE n.nspname = %s AND c.relname = %s AND NOT ix.indisprimary
    ORDER BY ic.relname, k.ord
"""


class PostgresMetadataProvider:
    """
    Reads schema metadata from the PostgreSQL catalog with psycopg2.

    The returned tables already have their foreign keys restricted to the
    returned set and their referencing lists linked.
    """

    def __init__(self, connection_string: str):
        self.connection_string = connection_string

    def connect(self):
        try:
            return psycopg2.connect(self.connection_string)
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Could not connect to PostgreSQL: {e}".strip(),
                database_url=self.connection_string,
            ) from e

    def get_tables(
        self,
        schemas: Union[str, Sequence[str]] = "public",
        table_names: Optional[Sequence[str]] = None,
    ) -> List[TableDescriptor]:
        """
        Introspect tables, views and materialized views.

        Args:
            schemas: One schema name or several
            table_names: Optional allow-list of ``name`` or ``schema.name`` entries

        Returns:
            Linked table descriptors ordered by schema and name

        Raises:
            DatabaseConnectionError: If the connection cannot be opened
            SchemaIntrospectionError: If a catalog query fails
        """
        schema_list = [schemas] if isinstance(schemas, str) else list(schemas)
        connection = self.connect()
        try:
            with connection.cursor() as cursor:
                tables = self._fetch_tables(cursor, schema_list, table_names)
                for table in tables:
                    logger.debug(f"Introspecting {table.qualified_name}")
                    table.columns = self._fetch_columns(cursor, table)
                    table.primary_key_name, table.primary_key = self._fetch_primary_key(cursor, table)
                    table.foreign_keys = self._fetch_foreign_keys(cursor, table)
                    table.indexes = self._fetch_indexes(cursor, table)
        except psycopg2.Error as e:
            raise SchemaIntrospectionError(
                f"Catalog query failed: {e}".strip(),
                schema=", ".join(schema_list),
            ) from e
        finally:
            connection.close()

        logger.info(f"Found {len(tables)} tables and views in schema(s) {', '.join(schema_list)}")
        return link_foreign_keys(tables)

    def _fetch_tables(self, cursor, schemas: List[str], table_names: Optional[Sequence[str]]) -> List[TableDescriptor]:
        cursor.execute(TABLES_QUERY, (schemas,))
        tables = [
            TableDescriptor(
                schema=schema,
                name=name,
                kind=RELKIND_TO_OBJECT_KIND[relkind],
                is_partitioned=relkind == "p",
            )
            for schema, name, relkind in cursor.fetchall()
        ]
        if table_names:
            wanted = set(table_names)
            tables = [t for t in tables if t.name in wanted or t.qualified_name in wanted]
            missing = wanted - {t.name for t in tables} - {t.qualified_name for t in tables}
            if missing:
                logger.warning(f"Skipping unknown tables: {', '.join(sorted(missing))}")
        return tables

    def _fetch_columns(self, cursor, table: TableDescriptor) -> List[ColumnDescriptor]:
        cursor.execute(COLUMNS_QUERY, (table.schema, table.name))
        return [
            ColumnDescriptor(
                name=name,
                data_type=data_type,
                is_nullable=is_nullable,
                max_length=max_length,
                default=default,
            )
            for name, data_type, is_nullable, max_length, default in cursor.fetchall()
        ]

    def _fetch_primary_key(self, cursor, table: TableDescriptor):
        cursor.execute(PRIMARY_KEY_QUERY, (table.schema, table.name))
        rows = cursor.fetchall()
        if not rows:
            return None, []
        return rows[0][0], [column for _, column in rows]

    def _fetch_foreign_keys(self, cursor, table: TableDescriptor) -> List[ForeignKeyDescriptor]:
        cursor.execute(FOREIGN_KEYS_QUERY, (table.schema, table.name))
        grouped: Dict[str, dict] = {}
        for constraint_name, target_schema, target_table, source_column, target_column in cursor.fetchall():
            entry = grouped.setdefault(constraint_name, {
                "target_schema": target_schema,
                "target_table": target_table,
                "source_columns": [],
                "target_columns": [],
            })
            entry["source_columns"].append(source_column)
            entry["target_columns"].append(target_column)

        return [
            ForeignKeyDescriptor(
                constraint_name=constraint_name,
                source_schema=table.schema,
                source_table=table.name,
                **entry,
            )
            for constraint_name, entry in grouped.items()
        ]

    def _fetch_indexes(self, cursor, table: TableDescriptor) -> List[IndexDescriptor]:
        cursor.execute(INDEXES_QUERY, (table.schema, table.name))
        indexes: Dict[str, IndexDescriptor] = {}
        expression_indexes = set()
        for index_name, is_unique, column in cursor.fetchall():
            if column is None:
                expression_indexes.add(index_name)
                continue
            indexes.setdefault(index_name, IndexDescriptor(name=index_name, is_unique=is_unique)).columns.append(column)

        for index_name in expression_indexes:
            logger.debug(f"Skipping expression index {index_name} on {table.qualified_name}")
            indexes.pop(index_name, None)
        return list(indexes.values())
