"""
Entity module emission.

Each entity becomes a plain annotated class in its own module. Related
entities are imported under ``TYPE_CHECKING`` only, so entity modules never
import each other at runtime and circular relationships are harmless.
"""

import ast
import logging
from typing import Dict, List, Optional, Set, Tuple

from db_entity_generator.ast_codegen.base import (
    create_annotated_name,
    create_arguments,
    create_call,
    create_class_def,
    create_docstring,
    create_expression,
    create_function_def,
    create_import,
    create_name,
    module_to_source,
)
from db_entity_generator.domain.code_models import EntityModel, GeneratedFile
from db_entity_generator.domain.naming import schema_package_name

logger = logging.getLogger(__name__)


def entity_filename(entity: EntityModel, separate_by_schema: bool = False) -> str:
    """Path of the entity module relative to the output package."""
    if separate_by_schema:
        return f"{schema_package_name(entity.schema)}/{entity.module_name}.py"
    return f"{entity.module_name}.py"


def relative_import_target(
    module_name: str,
    schema: str,
    from_schema: Optional[str],
    separate_by_schema: bool,
) -> Tuple[str, int]:
    """
    Module path and relative level for importing an entity module.

    ``from_schema`` is the schema of the importing entity, or ``None`` when
    importing from the package root (the container).
    """
    if not separate_by_schema:
        return module_name, 1
    package = schema_package_name(schema)
    if from_schema is None:
        return f"{package}.{module_name}", 1
    if schema_package_name(from_schema) == package:
        return module_name, 1
    return f"{package}.{module_name}", 2


def _scalar_imports(entity: EntityModel) -> Tuple[List[str], Set[str]]:
    modules: Set[str] = set()
    typing_names: Set[str] = {"Any"}
    for prop in entity.properties:
        for module, name in prop.scalar.imports:
            if name is None:
                modules.add(module)
            elif module == "typing":
                typing_names.add(name)
        if prop.annotation.startswith("Optional["):
            typing_names.add("Optional")
    if any(nav.is_optional for nav in entity.navigations):
        typing_names.add("Optional")
    if entity.collections:
        typing_names.add("List")
    return sorted(modules), typing_names


def _related_imports(entity: EntityModel, separate_by_schema: bool) -> List[ast.ImportFrom]:
    related: Dict[str, Tuple[str, str]] = {}
    for nav in entity.navigations:
        related.setdefault(nav.target_class, (nav.target_module, nav.target_schema))
    for coll in entity.collections:
        related.setdefault(coll.source_class, (coll.source_module, coll.source_schema))
    related.pop(entity.class_name, None)

    imports = []
    for class_name in sorted(related):
        module_name, schema = related[class_name]
        module, level = relative_import_target(module_name, schema, entity.schema, separate_by_schema)
        imports.append(create_import(module, [class_name], level=level))
    return imports


def create_entity_init() -> ast.FunctionDef:
    """``__init__`` assigning keyword arguments to attributes."""
    loop = ast.For(
        target=ast.Tuple(
            elts=[ast.Name(id="key", ctx=ast.Store()), ast.Name(id="value", ctx=ast.Store())],
            ctx=ast.Store()
        ),
        iter=create_call("kwargs.items"),
        body=[create_expression(create_call(
            "setattr", [create_name("self"), create_name("key"), create_name("value")]
        ))],
        orelse=[]
    )
    return create_function_def(
        "__init__",
        create_arguments([("self", None)], kwarg=("kwargs", "Any")),
        [loop],
        returns="None"
    )


def create_entity_class(entity: EntityModel) -> ast.ClassDef:
    """Class definition with one annotated declaration per member."""
    qualified = f"{entity.schema}.{entity.table_name}"
    kind = entity.storage.kind.value.replace("_", " ")
    body: List[ast.stmt] = [create_docstring(f"Maps the ``{qualified}`` {kind}.")]
    body.extend(create_annotated_name(prop.name, prop.annotation) for prop in entity.properties)
    body.extend(create_annotated_name(nav.name, nav.annotation) for nav in entity.navigations)
    body.extend(create_annotated_name(coll.name, coll.annotation) for coll in entity.collections)
    body.append(create_entity_init())
    return create_class_def(entity.class_name, [], body)


def generate_entity_module(entity: EntityModel, namespace: str, separate_by_schema: bool = False) -> GeneratedFile:
    """
    Render one entity module.

    Args:
        entity: Compiled entity model
        namespace: Dotted name of the generated package
        separate_by_schema: Place the module in a per-schema subpackage

    Returns:
        Relative filename and formatted source
    """
    filename = entity_filename(entity, separate_by_schema)
    modules, typing_names = _scalar_imports(entity)
    related = _related_imports(entity, separate_by_schema)
    if related:
        typing_names.add("TYPE_CHECKING")

    body: List[ast.stmt] = [
        create_docstring(f"{entity.class_name} entity of the ``{namespace}`` package."),
        create_import("__future__", ["annotations"]),
    ]
    body.extend(create_import(module) for module in modules)
    body.append(create_import("typing", sorted(typing_names)))
    if related:
        body.append(ast.If(test=create_name("TYPE_CHECKING"), body=related, orelse=[]))
    body.append(create_entity_class(entity))

    logger.debug(f"Rendering entity module {filename}")
    return GeneratedFile(filename, module_to_source(body, filename))
