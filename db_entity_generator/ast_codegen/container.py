"""
Container module emission and incremental merge.

The container class exposes one session-bound accessor per entity and a
static ``on_model_creating`` hook that declares every storage table and maps
the entities onto them with SQLAlchemy imperative mapping.

Incremental updates never re-render the file. The existing text is parsed
with ``ast`` to find the container class, its declared members and its
``on_model_creating`` hook. Missing accessors and their imports are spliced
in as text, and the table declaration and mapping of each newly added entity
are appended to the end of the hook. Every other byte is left untouched.
"""

import ast
import logging
from typing import AbstractSet, List, Optional, Sequence, Tuple

from db_entity_generator.ast_codegen.base import (
    create_arguments,
    create_assign,
    create_attribute,
    create_call,
    create_class_def,
    create_constant,
    create_dict,
    create_docstring,
    create_expression,
    create_function_def,
    create_import,
    create_keyword,
    create_list,
    create_list_of_strings,
    create_name,
    create_return,
    create_subscript,
    module_to_source,
)
from db_entity_generator.ast_codegen.entities import relative_import_target
from db_entity_generator.codegen_utils import format_python_code_using_black
from db_entity_generator.constants import (
    SQLALCHEMY_ALIAS,
    SQLALCHEMY_ORM_ALIAS,
    TABLE_VARIABLE_SUFFIX,
    ContainerMembers,
)
from db_entity_generator.domain.aggregator import (
    assigned_local_names,
    bound_module_names,
    declared_member_names,
    find_container_class,
    find_model_creating,
    last_accessor,
    mapped_entity_names,
    missing_accessors,
    parse_container_source,
)
from db_entity_generator.domain.code_models import (
    AccessorModel,
    ColumnMapping,
    ContainerModel,
    EntityModel,
    GeneratedFile,
)
from db_entity_generator.domain.naming import container_module_name

logger = logging.getLogger(__name__)


def container_filename(container_name: str) -> str:
    return f"{container_module_name(container_name)}.py"


def table_variable(module_name: str) -> str:
    return f"{module_name}{TABLE_VARIABLE_SUFFIX}"


def _sa(name: str) -> str:
    return f"{SQLALCHEMY_ALIAS}.{name}"


def _orm(name: str) -> str:
    return f"{SQLALCHEMY_ORM_ALIAS}.{name}"


def create_column_reference(module_name: str, column_name: str) -> ast.Subscript:
    """``<table>.c["column"]``; subscription keeps any storage name legal."""
    return create_subscript(create_attribute(table_variable(module_name), "c"), column_name)


def _qualified_column(schema: Optional[str], table_name: str, column_name: str) -> str:
    prefix = f"{schema}.{table_name}" if schema else table_name
    return f"{prefix}.{column_name}"


# --- Accessors ---

def create_accessor(accessor: AccessorModel) -> ast.FunctionDef:
    """Read-only property returning a query over one entity."""
    query = create_call(
        create_attribute(create_attribute("self", ContainerMembers.SESSION), "query"),
        [create_name(accessor.entity_class)]
    )
    return create_function_def(
        accessor.name,
        create_arguments([("self", None)]),
        [create_return(query)],
        decorators=["property"],
        returns=f"{_orm('Query')}[{accessor.entity_class}]"
    )


def create_entity_import(accessor: AccessorModel, separate_by_schema: bool) -> ast.ImportFrom:
    module, level = relative_import_target(accessor.module_name, accessor.schema, None, separate_by_schema)
    return create_import(module, [accessor.entity_class], level=level)


# --- Table declarations ---

def create_sql_type(mapping: ColumnMapping) -> ast.Call:
    args = [create_constant(mapping.max_length)] if mapping.max_length else []
    keywords = [create_keyword(name, value) for name, value in mapping.scalar.sql_type_options]
    return create_call(_sa(mapping.scalar.sql_type), args, keywords)


def create_column(mapping: ColumnMapping) -> ast.Call:
    keywords = [create_keyword("nullable", not mapping.is_required)]
    if mapping.default_sql is not None:
        keywords.append(create_keyword("server_default", create_call(_sa("text"), [create_constant(mapping.default_sql)])))
    return create_call(
        _sa("Column"),
        [create_constant(mapping.column_name), create_sql_type(mapping)],
        keywords
    )


def create_table_declaration(entity: EntityModel) -> ast.Assign:
    """``<module>_table = sa.Table(...)`` holding columns, keys, foreign keys and indexes."""
    storage = entity.storage
    args: List[ast.expr] = [
        create_constant(storage.table_name),
        create_attribute(ContainerMembers.REGISTRY_ARG, "metadata"),
    ]
    args.extend(create_column(mapping) for mapping in entity.column_mappings)

    if entity.key is not None:
        key_keywords = []
        if entity.key.constraint_name:
            key_keywords.append(create_keyword("name", entity.key.constraint_name))
        args.append(create_call(
            _sa("PrimaryKeyConstraint"),
            [create_constant(column) for column in entity.key.columns],
            key_keywords
        ))

    for wiring in entity.relationships:
        args.append(create_call(
            _sa("ForeignKeyConstraint"),
            [
                create_list_of_strings(wiring.source_columns),
                create_list_of_strings(
                    _qualified_column(wiring.target_schema, wiring.target_table, column)
                    for column in wiring.target_columns
                ),
            ],
            [create_keyword("name", wiring.constraint_name)]
        ))

    for index in entity.indexes:
        args.append(create_call(
            _sa("Index"),
            [create_constant(index.name)] + [create_constant(column) for column in index.columns],
            [create_keyword("unique", index.is_unique)]
        ))

    keywords = []
    if storage.schema:
        keywords.append(create_keyword("schema", storage.schema))
    info = []
    if storage.is_view:
        info.append(("is_view", create_constant(True)))
        info.append(("object_kind", create_constant(storage.kind.value)))
    if storage.is_partitioned:
        info.append(("is_partitioned", create_constant(True)))
    if info:
        keywords.append(create_keyword("info", create_dict(info)))

    return create_assign(table_variable(entity.module_name), create_call(_sa("Table"), args, keywords))


# --- Mapping ---

def _inverse_keyword(inverse_name: str, other_class: str, backref_classes: AbstractSet[str]) -> ast.keyword:
    if other_class in backref_classes:
        return create_keyword("backref", inverse_name)
    return create_keyword("back_populates", inverse_name)


def create_entity_mapping(
    entity: EntityModel,
    mapped_classes: AbstractSet[str],
    backref_classes: AbstractSet[str] = frozenset(),
) -> ast.Expr:
    """
    ``mapper_registry.map_imperatively(...)`` for one entity.

    Relationships to classes outside ``mapped_classes`` are left out. The
    inverse side of a relationship to a class in ``backref_classes`` is
    declared through ``backref`` on this side only.
    """
    properties: List[Tuple[str, ast.expr]] = [
        (prop.name, create_column_reference(entity.module_name, prop.column_name))
        for prop in entity.properties
    ]

    for nav in entity.navigations:
        if nav.target_class not in mapped_classes:
            continue
        keywords = [
            create_keyword("foreign_keys", create_list(
                create_column_reference(entity.module_name, column) for column in nav.source_columns
            )),
            _inverse_keyword(nav.inverse_name, nav.target_class, backref_classes),
        ]
        if nav.is_self_reference:
            keywords.append(create_keyword("remote_side", create_list(
                create_column_reference(entity.module_name, column) for column in nav.target_columns
            )))
        properties.append((nav.name, create_call(_orm("relationship"), [create_name(nav.target_class)], keywords)))

    for coll in entity.collections:
        if coll.source_class not in mapped_classes:
            continue
        keywords = [
            create_keyword("foreign_keys", create_list(
                create_column_reference(coll.source_module, column) for column in coll.source_columns
            )),
            _inverse_keyword(coll.inverse_name, coll.source_class, backref_classes),
        ]
        properties.append((coll.name, create_call(_orm("relationship"), [create_name(coll.source_class)], keywords)))

    keywords = [create_keyword("properties", create_dict(properties))]
    if entity.storage.is_keyless:
        # Keyless objects are mapped over all of their columns
        keywords.append(create_keyword("primary_key", create_list(
            create_column_reference(entity.module_name, prop.column_name) for prop in entity.properties
        )))

    return create_expression(create_call(
        create_attribute(ContainerMembers.REGISTRY_ARG, "map_imperatively"),
        [create_name(entity.class_name), create_name(table_variable(entity.module_name))],
        keywords
    ))


def create_model_creating(container: ContainerModel) -> ast.FunctionDef:
    mapped_classes = {entity.class_name for entity in container.entities}
    body: List[ast.stmt] = [create_docstring("Declare every storage table, then map each entity onto its table.")]
    body.extend(create_table_declaration(entity) for entity in container.entities)
    body.extend(create_entity_mapping(entity, mapped_classes) for entity in container.entities)
    return create_function_def(
        ContainerMembers.MODEL_CREATING,
        create_arguments([(ContainerMembers.REGISTRY_ARG, _orm("registry"))]),
        body,
        decorators=["staticmethod"],
        returns="None"
    )


def create_container_class(container: ContainerModel) -> ast.ClassDef:
    init = create_function_def(
        ContainerMembers.INIT,
        create_arguments([("self", None), (ContainerMembers.SESSION, _orm("Session"))]),
        [create_assign(
            ast.Attribute(value=create_name("self"), attr=ContainerMembers.SESSION, ctx=ast.Store()),
            create_name(ContainerMembers.SESSION)
        )],
        returns="None"
    )
    body: List[ast.stmt] = [
        create_docstring("Session-bound collection accessors for every mapped entity."),
        init,
    ]
    body.extend(create_accessor(accessor) for accessor in container.accessors)
    body.append(create_model_creating(container))
    return create_class_def(container.name, [], body)


def generate_container_module(container: ContainerModel) -> GeneratedFile:
    """Render the complete container module from scratch."""
    filename = container_filename(container.name)
    body: List[ast.stmt] = [
        create_docstring(f"Data context of the ``{container.namespace}`` package."),
        create_import("__future__", ["annotations"]),
        create_import("sqlalchemy", asname=SQLALCHEMY_ALIAS),
        create_import("sqlalchemy", [SQLALCHEMY_ORM_ALIAS]),
    ]
    body.extend(create_entity_import(accessor, container.separate_by_schema) for accessor in container.accessors)
    body.append(create_container_class(container))

    logger.debug(f"Rendering container module {filename} with {len(container.accessors)} accessors")
    return GeneratedFile(filename, module_to_source(body, filename))


# --- Incremental merge ---

def render_statement(node: ast.stmt, indent: str, filename: str) -> List[str]:
    """Format a single statement with black and indent every non-blank line."""
    module = ast.Module(body=[node], type_ignores=[])
    ast.fix_missing_locations(module)
    code = format_python_code_using_black(filename, ast.unparse(module) + "\n")
    return [indent + line if line.strip() else line for line in code.splitlines(keepends=True)]


def _body_indent(lines: Sequence[str], node: ast.stmt, fallback: str) -> str:
    first = node.body[0]
    indent = lines[first.lineno - 1][: first.col_offset]
    return indent if not indent.strip() else fallback


def _import_insertion_line(module: ast.Module) -> int:
    """Line after which new imports go: the last top-level import, else the docstring, else the top."""
    imports = [node for node in module.body if isinstance(node, (ast.Import, ast.ImportFrom))]
    if imports:
        return imports[-1].end_lineno
    first = module.body[0] if module.body else None
    if isinstance(first, ast.Expr) and isinstance(first.value, ast.Constant) and isinstance(first.value.value, str):
        return first.end_lineno
    return 0


def _accessor_insertion_line(class_node: ast.ClassDef) -> int:
    anchor = last_accessor(class_node)
    if anchor is None:
        anchor = next(
            (node for node in class_node.body
             if isinstance(node, ast.FunctionDef) and node.name == ContainerMembers.INIT),
            None
        )
    if anchor is None:
        return class_node.end_lineno
    return anchor.end_lineno


def _configuration_insertion(
    lines: Sequence[str],
    class_node: ast.ClassDef,
    class_indent: str,
    container: ContainerModel,
    missing: Sequence[AccessorModel],
) -> Optional[Tuple[int, List[str]]]:
    """
    Table declarations and mappings of the entities behind ``missing``,
    placed after the last statement of ``on_model_creating``.

    Entities the hook already maps are skipped, and so are table variables
    it already assigns.
    """
    by_class = {entity.class_name: entity for entity in container.entities}
    pending = [by_class[accessor.entity_class] for accessor in missing if accessor.entity_class in by_class]
    if not pending:
        return None

    hook = find_model_creating(class_node)
    if hook is None:
        logger.warning(
            f"{container.name} has no {ContainerMembers.MODEL_CREATING} hook; "
            f"{', '.join(entity.class_name for entity in pending)} will not be mapped"
        )
        return None

    already_mapped = mapped_entity_names(hook)
    pending = [entity for entity in pending if entity.class_name not in already_mapped]
    if not pending:
        return None

    filename = container_filename(container.name)
    indent = _body_indent(lines, hook, class_indent + "    ")
    declared = assigned_local_names(hook)
    mapped_classes = already_mapped | {entity.class_name for entity in pending}

    new_lines: List[str] = []
    for entity in pending:
        if table_variable(entity.module_name) in declared:
            continue
        new_lines.extend(render_statement(create_table_declaration(entity), indent, filename))
    for entity in pending:
        mapping = create_entity_mapping(entity, mapped_classes, backref_classes=already_mapped)
        new_lines.extend(render_statement(mapping, indent, filename))
    return hook.end_lineno, new_lines


def merge_container_text(existing_text: str, container: ContainerModel) -> Tuple[str, List[AccessorModel]]:
    """
    Splice accessors missing from an existing container into its text, and
    declare and map the entities behind them in ``on_model_creating``.

    Args:
        existing_text: Source of a previously generated (possibly hand-edited) container
        container: Container model for the newly resolved entities

    Returns:
        The merged text and the accessors that were appended. When nothing is
        missing the text is returned unchanged.

    Raises:
        ContainerMergeError: If the text does not parse or lacks the container class
    """
    module = parse_container_source(existing_text, container.name)
    class_node = find_container_class(module, container.name)
    missing = missing_accessors(declared_member_names(class_node), container)
    if not missing:
        return existing_text, []

    filename = container_filename(container.name)
    lines = existing_text.splitlines(keepends=True)
    indent = _body_indent(lines, class_node, "    ")

    accessor_lines: List[str] = []
    for accessor in missing:
        accessor_lines.append("\n")
        accessor_lines.extend(render_statement(create_accessor(accessor), indent, filename))

    bound = bound_module_names(module)
    import_lines: List[str] = []
    for accessor in missing:
        if accessor.entity_class in bound:
            continue
        import_lines.extend(render_statement(create_entity_import(accessor, container.separate_by_schema), "", filename))
        bound.add(accessor.entity_class)

    # On a shared line the accessors must end up below the hook body
    insertions = [(_accessor_insertion_line(class_node), accessor_lines)]
    configuration = _configuration_insertion(lines, class_node, indent, container, missing)
    if configuration is not None:
        insertions.append(configuration)
    if import_lines:
        insertions.append((_import_insertion_line(module), import_lines))

    # Bottom-up so earlier line numbers stay valid
    for line_number, new_lines in sorted(insertions, key=lambda item: item[0], reverse=True):
        if line_number > 0 and not lines[line_number - 1].endswith("\n"):
            lines[line_number - 1] += "\n"
        lines[line_number:line_number] = new_lines

    return "".join(lines), missing
