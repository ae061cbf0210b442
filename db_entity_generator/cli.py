import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from db_entity_generator.ast_codegen.container import container_filename
from db_entity_generator.colored_logging import (
    log_highlight,
    log_progress,
    log_section,
    log_success,
    setup_colored_logging,
)
from db_entity_generator.config_validation import (
    GeneratorConfigSchema,
    load_config,
    resolve_connection_string,
)
from db_entity_generator.domain.models import TableDescriptor
from db_entity_generator.domain.naming import schema_package_name
from db_entity_generator.exceptions import ConfigurationError, DbEntityGeneratorError
from db_entity_generator.generator import EntityGenerator
from db_entity_generator.introspection_postgres import PostgresMetadataProvider

logger = logging.getLogger(__name__)

PACKAGE_INIT = "__init__.py"


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c",
        "--config",
        help="Path to the YAML configuration file.",
    )
    common.add_argument(
        "--connection",
        dest="connection_string",
        help="PostgreSQL connection string. Overrides the configuration file.",
    )
    common.add_argument(
        "--schema",
        dest="schemas",
        action="append",
        help="Schema to introspect (repeatable, default: public).",
    )
    common.add_argument(
        "--namespace",
        help="Dotted package name of the generated code (default: generated_entities).",
    )
    common.add_argument(
        "--container-name",
        dest="container_name",
        help="Class name of the generated data context (default: AppDbContext).",
    )
    common.add_argument(
        "-o",
        "--output-dir",
        dest="output_dir",
        help="Directory the generated package is written to (default: ./entities).",
    )
    common.add_argument(
        "--tables",
        dest="include_tables",
        nargs="+",
        help="Tables to process, as 'name' or 'schema.name'.",
    )
    common.add_argument(
        "--separate-by-schema",
        dest="separate_by_schema",
        action="store_const",
        const=True,
        help="Place entity modules in one subpackage per schema.",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose DEBUG logging for the generator tool.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output (useful for CI/CD environments).",
    )

    parser = argparse.ArgumentParser(
        prog="db-entity-generator",
        description="Generate SQLAlchemy entity modules and a data context from a PostgreSQL schema.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser(
        "generate",
        parents=[common],
        help="Generate every entity module and (re)write the container.",
    )
    subparsers.add_parser(
        "update",
        parents=[common],
        help="Regenerate the given tables and merge missing accessors into the existing container.",
    )
    return parser


def write_generated_file(output_dir: Path, filename: str, content: str) -> Path:
    path = output_dir / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.debug(f"Wrote {path}")
    return path


def ensure_package(directory: Path) -> None:
    """Create an empty ``__init__.py`` unless one exists already."""
    init_file = directory / PACKAGE_INIT
    if not init_file.exists():
        directory.mkdir(parents=True, exist_ok=True)
        init_file.write_text("", encoding="utf-8")
        logger.debug(f"Created {init_file}")


def select_tables(tables: List[TableDescriptor], names: Optional[List[str]]) -> List[TableDescriptor]:
    if not names:
        return tables
    wanted = set(names)
    return [table for table in tables if table.name in wanted or table.qualified_name in wanted]


def write_entities(
    generator: EntityGenerator,
    tables: List[TableDescriptor],
    config: GeneratorConfigSchema,
    output_dir: Path,
) -> None:
    ensure_package(output_dir)
    for table in tables:
        generated = generator.generate_entity(table, config.namespace, config.separate_by_schema)
        if config.separate_by_schema:
            ensure_package(output_dir / schema_package_name(table.schema))
        write_generated_file(output_dir, generated.filename, generated.content)
        log_highlight(logger, f"{table.qualified_name} -> {generated.filename}")


def run_generate(config: GeneratorConfigSchema, tables: List[TableDescriptor]) -> None:
    output_dir = Path(config.output_dir)
    generator = EntityGenerator(tables, config.container_name)
    tables = select_tables(tables, config.include_tables)

    log_section(logger, "Entity Generation")
    log_progress(logger, f"Generating {len(tables)} entity modules...")
    write_entities(generator, tables, config, output_dir)

    container = generator.generate_container(
        tables, config.namespace, config.container_name, config.separate_by_schema
    )
    write_generated_file(output_dir, container.filename, container.content)
    log_success(logger, f"Generated {len(tables)} entities and {container.filename} in {output_dir}")


def run_update(config: GeneratorConfigSchema, tables: List[TableDescriptor]) -> None:
    if not config.include_tables:
        raise ConfigurationError(
            "The update command needs the tables to regenerate",
            suggestions=["Pass --tables name [name ...]", "Set include_tables in the configuration file"],
        )

    output_dir = Path(config.output_dir)
    # Names are resolved against the whole schema so they match a full generate run
    generator = EntityGenerator(tables, config.container_name)
    selected = select_tables(tables, config.include_tables)

    log_section(logger, "Entity Update")
    log_progress(logger, f"Regenerating {len(selected)} entity modules...")
    write_entities(generator, selected, config, output_dir)

    container_path = output_dir / container_filename(config.container_name)
    if not container_path.is_file():
        logger.warning(f"Container file {container_path} not found; run 'generate' to create it. Skipping merge.")
        return

    update = generator.update_container(
        container_path.read_text(encoding="utf-8"),
        selected,
        config.container_name,
        config.separate_by_schema,
    )
    if update.changed:
        write_generated_file(output_dir, update.filename, update.content)
        log_success(logger, f"Updated {update.filename}")
    else:
        log_success(logger, f"{update.filename} already up to date")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_colored_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        use_colors=not args.no_color,
    )
    if args.verbose:
        logger.debug("Verbose mode enabled. DEBUG level logging activated.")

    try:
        log_progress(logger, "Loading configuration...")
        config = load_config(args.config, args)

        log_section(logger, "Database Schema Introspection")
        log_progress(logger, f"Introspecting schema(s) {', '.join(config.schemas)}...")
        provider = PostgresMetadataProvider(resolve_connection_string(config))
        tables = provider.get_tables(config.schemas)
        if not tables:
            logger.warning("Introspection did not find any tables. Exiting.")
            return 0

        if args.command == "generate":
            run_generate(config, tables)
        else:
            run_update(config, tables)
    except DbEntityGeneratorError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
