# File: tests/conftest.py
# Contains pytest fixtures for the PostgreSQL integration tests.

import pytest
from pathlib import Path
from typing import Dict, Any, Generator

# Database connector (needed here for schema loading)
import psycopg2


# --- Constants ---
# Assumes conftest.py is in tests/ subdirectory relative to project root
GENERATOR_PROJECT_ROOT = Path(__file__).parent.parent
TEST_SCHEMAS_DIR = GENERATOR_PROJECT_ROOT / "tests" / "schemas"


# --- Fixture for Database Container (using Testcontainers) ---
@pytest.fixture(scope="session")
def pg_service() -> Generator[Dict[str, Any], Any, None]:
    """
    Starts/stops a PostgreSQL container for the test session using testcontainers.
    Yields a dictionary with database connection details.
    Tests requesting it are skipped when no container runtime is available.
    """
    testcontainers_postgres = pytest.importorskip("testcontainers.postgres")

    test_db_user = "testuser"
    test_db_password = "testpassword"
    test_db_name = "testdb"

    pg_container = testcontainers_postgres.PostgresContainer(
        image="postgres:15-alpine",
        username=test_db_user,
        password=test_db_password,
        dbname=test_db_name
    )
    try:
        pg_container.start()
    except Exception as e:
        pytest.skip(f"PostgreSQL testcontainer could not be started: {e}")

    try:
        host = pg_container.get_container_host_ip()
        port = int(pg_container.get_exposed_port(5432))
        yield {
            "host": host,
            "port": port,
            "user": test_db_user,
            "password": test_db_password,
            "db_name": test_db_name,
            "dsn": (
                f"host={host} port={port} user={test_db_user} "
                f"password={test_db_password} dbname={test_db_name}"
            ),
        }
    finally:
        pg_container.stop()


# --- Fixture to Load Database Schema ---
@pytest.fixture(scope="session")
def loaded_schema(pg_service: Dict[str, Any]) -> Dict[str, Any]:
    """Loads tests/schemas/entity_catalog.sql into the container and returns the service details."""
    schema_file = TEST_SCHEMAS_DIR / "entity_catalog.sql"
    if not schema_file.is_file():
        pytest.fail(f"Test schema file not found: {schema_file}")

    conn = psycopg2.connect(pg_service["dsn"], connect_timeout=5)
    try:
        with conn.cursor() as cursor:
            cursor.execute(schema_file.read_text(encoding="utf-8"))
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        pytest.fail(f"Database error loading schema: {e}")
    finally:
        conn.close()
    return pg_service
