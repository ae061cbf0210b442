"""
Entry point tying resolution, compilation, aggregation and emission together.

``EntityGenerator`` is built from the complete table set of a run and the
name of its container. Building it runs name resolution once, with the
container's class and module names kept away from every entity; every
generate/update call afterwards only reads the frozen result.
"""

import logging
from typing import Dict, List, Sequence

from db_entity_generator.ast_codegen.container import (
    container_filename,
    generate_container_module,
    merge_container_text,
)
from db_entity_generator.ast_codegen.entities import generate_entity_module
from db_entity_generator.constants import DefaultConfig
from db_entity_generator.domain.aggregator import build_container_model
from db_entity_generator.domain.code_models import ContainerUpdate, EntityModel, GeneratedFile
from db_entity_generator.domain.compiler import compile_entity
from db_entity_generator.domain.models import TableDescriptor, TableKey
from db_entity_generator.domain.resolver import ResolvedNames, resolve_names

logger = logging.getLogger(__name__)


class EntityGenerator:
    """Generates entity modules and the container for one resolved table set."""

    def __init__(self, tables: Sequence[TableDescriptor], container_name: str = DefaultConfig.CONTAINER_NAME):
        self.tables: List[TableDescriptor] = sorted(tables, key=lambda table: table.key)
        self.names: ResolvedNames = resolve_names(self.tables, container_name)
        self._entities: Dict[TableKey, EntityModel] = {}
        logger.debug(f"Entity generator ready for {len(self.tables)} tables")

    def compile(self, table: TableDescriptor) -> EntityModel:
        """Compiled model of ``table``; compiled once and cached."""
        entity = self._entities.get(table.key)
        if entity is None:
            entity = compile_entity(table, self.names)
            self._entities[table.key] = entity
        return entity

    def _compile_all(self, tables: Sequence[TableDescriptor]) -> List[EntityModel]:
        return [self.compile(table) for table in sorted(tables, key=lambda table: table.key)]

    def generate_entity(
        self,
        table: TableDescriptor,
        namespace: str,
        separate_by_schema: bool = False,
    ) -> GeneratedFile:
        """
        Render the module for one entity.

        Args:
            table: Table of the resolved set
            namespace: Dotted name of the generated package
            separate_by_schema: Place the module in a per-schema subpackage

        Returns:
            ``(filename, content)`` with the filename relative to the package root
        """
        return generate_entity_module(self.compile(table), namespace, separate_by_schema)

    def generate_container(
        self,
        tables: Sequence[TableDescriptor],
        namespace: str,
        container_name: str,
        separate_by_schema: bool = False,
    ) -> GeneratedFile:
        """Render the container module for ``tables`` from scratch."""
        container = build_container_model(self._compile_all(tables), container_name, namespace, separate_by_schema)
        return generate_container_module(container)

    def update_container(
        self,
        existing_text: str,
        tables: Sequence[TableDescriptor],
        container_name: str,
        separate_by_schema: bool = False,
    ) -> ContainerUpdate:
        """
        Merge accessors for ``tables`` into a previously generated container.

        Existing declarations, hand-written ones included, are left untouched.
        Missing accessors are appended with their imports, and the entities
        behind them are declared and mapped at the end of ``on_model_creating``.

        Returns:
            ``(filename, content, changed)``; ``content`` is ``existing_text``
            itself when nothing was missing

        Raises:
            ContainerMergeError: If ``existing_text`` has no class named ``container_name``
        """
        container = build_container_model(self._compile_all(tables), container_name, "", separate_by_schema)
        content, appended = merge_container_text(existing_text, container)
        filename = container_filename(container_name)
        if not appended:
            logger.debug(f"Container {container_name} already declares every accessor")
            return ContainerUpdate(filename, existing_text, False)

        logger.info(f"Appended accessors to {container_name}: {', '.join(a.name for a in appended)}")
        return ContainerUpdate(filename, content, True)
