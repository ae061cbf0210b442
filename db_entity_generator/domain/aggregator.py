"""
Container aggregation.

Builds the container model (one collection accessor per entity plus the
ordered configuration blocks) and reads back the structure of a previously
generated container so an incremental update can compute which accessors,
table declarations and mappings are missing.
"""

import ast
import logging
from typing import Iterable, List, Optional, Sequence, Set

from ..constants import ContainerMembers
from ..exceptions import ContainerMergeError
from .code_models import AccessorModel, ContainerModel, EntityModel
from .naming import make_unique, pluralize

logger = logging.getLogger(__name__)


def build_container_model(
    entities: Sequence[EntityModel],
    name: str,
    namespace: str,
    separate_by_schema: bool = False,
) -> ContainerModel:
    """
    Compose entity models into one container model.

    Each entity gets an accessor named after its pluralized class name.
    Accessor names are unique within the container and never shadow the
    container's own members.
    """
    taken: Set[str] = set(ContainerMembers.RESERVED)
    accessors: List[AccessorModel] = []
    for entity in entities:
        accessor_name = make_unique(pluralize(entity.class_name), taken)
        taken.add(accessor_name)
        accessors.append(
            AccessorModel(
                name=accessor_name,
                entity_class=entity.class_name,
                module_name=entity.module_name,
                schema=entity.schema,
            )
        )
    return ContainerModel(
        name=name,
        namespace=namespace,
        accessors=tuple(accessors),
        entities=tuple(entities),
        separate_by_schema=separate_by_schema,
    )


def parse_container_source(text: str, container_name: str) -> ast.Module:
    """Parse existing container text, reporting unparsable input as a merge error."""
    try:
        return ast.parse(text)
    except SyntaxError as e:
        raise ContainerMergeError(
            f"Existing container file could not be parsed: {e.msg} (line {e.lineno})",
            container_name=container_name,
        ) from e


def find_container_class(module: ast.Module, container_name: str) -> ast.ClassDef:
    """Locate the top-level container class or fail loudly."""
    for node in module.body:
        if isinstance(node, ast.ClassDef) and node.name == container_name:
            return node
    raise ContainerMergeError(
        f"Container class '{container_name}' was not found in the existing file",
        container_name=container_name,
    )


def _target_names(targets: Iterable[ast.expr]) -> Iterable[str]:
    for target in targets:
        if isinstance(target, ast.Name):
            yield target.id
        elif isinstance(target, (ast.Tuple, ast.List)):
            yield from _target_names(target.elts)


def declared_member_names(class_node: ast.ClassDef) -> Set[str]:
    """Names declared directly in a class body, hand-written ones included."""
    names: Set[str] = set()
    for node in class_node.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.add(node.name)
        elif isinstance(node, ast.Assign):
            names.update(_target_names(node.targets))
        elif isinstance(node, ast.AnnAssign):
            names.update(_target_names([node.target]))
    return names


def bound_module_names(module: ast.Module) -> Set[str]:
    """Names bound at module level by imports, definitions and assignments."""
    names: Set[str] = set()
    for node in module.body:
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                names.add(alias.asname or alias.name.split(".")[0])
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.add(node.name)
        elif isinstance(node, ast.Assign):
            names.update(_target_names(node.targets))
        elif isinstance(node, ast.AnnAssign):
            names.update(_target_names([node.target]))
    return names


def is_accessor(node: ast.stmt) -> bool:
    """True for ``@property`` methods, the shape of a generated accessor."""
    return isinstance(node, ast.FunctionDef) and any(
        isinstance(decorator, ast.Name) and decorator.id == "property"
        for decorator in node.decorator_list
    )


def last_accessor(class_node: ast.ClassDef) -> Optional[ast.stmt]:
    accessors = [node for node in class_node.body if is_accessor(node)]
    return accessors[-1] if accessors else None


def missing_accessors(declared_names: Set[str], container: ContainerModel) -> List[AccessorModel]:
    """Accessors of ``container`` not yet declared, in container order."""
    return [accessor for accessor in container.accessors if accessor.name not in declared_names]


def find_model_creating(class_node: ast.ClassDef) -> Optional[ast.FunctionDef]:
    return next(
        (node for node in class_node.body
         if isinstance(node, ast.FunctionDef) and node.name == ContainerMembers.MODEL_CREATING),
        None,
    )


def mapped_entity_names(hook: ast.FunctionDef) -> Set[str]:
    """Classes passed first to a ``map_imperatively`` call anywhere in the hook."""
    names: Set[str] = set()
    for node in ast.walk(hook):
        if (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Attribute)
            and node.func.attr == "map_imperatively"
            and node.args
            and isinstance(node.args[0], ast.Name)
        ):
            names.add(node.args[0].id)
    return names


def assigned_local_names(hook: ast.FunctionDef) -> Set[str]:
    names: Set[str] = set()
    for node in ast.walk(hook):
        if isinstance(node, ast.Assign):
            names.update(_target_names(node.targets))
        elif isinstance(node, ast.AnnAssign):
            names.update(_target_names([node.target]))
    return names
