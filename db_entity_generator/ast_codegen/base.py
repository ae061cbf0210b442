import ast
import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from db_entity_generator.codegen_utils import format_python_code_using_black

logger = logging.getLogger(__name__)


def add_location(node):
    """Add location info to AST nodes"""
    node.lineno = 1
    node.col_offset = 0
    return node


def create_docstring(content: str) -> ast.Expr:
    """Creates an AST node for a docstring."""
    return add_location(ast.Expr(value=ast.Constant(value=content)))


def create_name(identifier: str) -> ast.Name:
    return add_location(ast.Name(id=identifier, ctx=ast.Load()))


def create_attribute(value: Union[str, ast.expr], attr: str) -> ast.Attribute:
    """Creates ``value.attr``; a string value is treated as a dotted name."""
    if isinstance(value, str):
        value = create_dotted_name(value)
    return add_location(ast.Attribute(value=value, attr=attr, ctx=ast.Load()))


def create_dotted_name(dotted: str) -> ast.expr:
    head, *rest = dotted.split(".")
    node: ast.expr = create_name(head)
    for part in rest:
        node = create_attribute(node, part)
    return node


def create_import(
    module: str,
    names: Optional[Sequence[str]] = None,
    level: int = 0,
    asname: Optional[str] = None,
) -> Union[ast.Import, ast.ImportFrom]:
    """Creates an AST node for an import statement; ``level`` > 0 makes it relative."""
    if names:
        node = ast.ImportFrom(
            module=module or None,
            names=[add_location(ast.alias(name=name)) for name in names],
            level=level
        )
    else:
        node = ast.Import(names=[add_location(ast.alias(name=module, asname=asname))])
    return add_location(node)


def create_constant(value: Any) -> ast.Constant:
    """Creates an AST Constant node for a string, number, boolean or None."""
    return add_location(ast.Constant(value=value))


def create_keyword(arg: str, value: Union[ast.expr, Any]) -> ast.keyword:
    """Creates an AST keyword argument; plain Python values become constants."""
    if not isinstance(value, ast.AST):
        value = create_constant(value)
    return add_location(ast.keyword(arg=arg, value=value))


def create_call(
    func: Union[str, ast.expr],
    args: Optional[List[ast.expr]] = None,
    keywords: Optional[List[ast.keyword]] = None,
) -> ast.Call:
    """Creates an AST node for a call; a string ``func`` may be dotted."""
    if isinstance(func, str):
        func = create_dotted_name(func)
    return add_location(ast.Call(func=func, args=args or [], keywords=keywords or []))


def create_list(elements: Iterable[ast.expr]) -> ast.List:
    return add_location(ast.List(elts=list(elements), ctx=ast.Load()))


def create_list_of_strings(items: Iterable[str]) -> ast.List:
    """Creates an AST List node containing string constants."""
    return create_list(create_constant(item) for item in items)


def create_dict(items: Sequence[Tuple[str, ast.expr]]) -> ast.Dict:
    """Creates a dict literal with string keys."""
    return add_location(ast.Dict(
        keys=[create_constant(key) for key, _ in items],
        values=[value for _, value in items]
    ))


def create_subscript(value: Union[str, ast.expr], index: Union[ast.expr, Any]) -> ast.Subscript:
    if isinstance(value, str):
        value = create_dotted_name(value)
    if not isinstance(index, ast.AST):
        index = create_constant(index)
    return add_location(ast.Subscript(value=value, slice=index, ctx=ast.Load()))


def create_annotation(expression: str) -> ast.expr:
    """Parses a type expression such as ``Optional[int]`` into an AST node."""
    return ast.parse(expression, mode="eval").body


def create_assign(target: Union[str, ast.expr], value: ast.expr) -> ast.Assign:
    """Creates an AST node for an assignment."""
    if isinstance(target, str):
        target = add_location(ast.Name(id=target, ctx=ast.Store()))
    return add_location(ast.Assign(targets=[target], value=value))


def create_annotated_name(target: str, annotation: str) -> ast.AnnAssign:
    """Creates a bare annotated declaration: ``target: annotation``."""
    return add_location(ast.AnnAssign(
        target=add_location(ast.Name(id=target, ctx=ast.Store())),
        annotation=create_annotation(annotation),
        value=None,
        simple=1
    ))


def create_arguments(
    names: Sequence[Tuple[str, Optional[str]]],
    kwarg: Optional[Tuple[str, Optional[str]]] = None,
) -> ast.arguments:
    """Positional parameters as ``(name, annotation)`` pairs plus an optional ``**kwarg``."""

    def _arg(name: str, annotation: Optional[str]) -> ast.arg:
        return add_location(ast.arg(arg=name, annotation=create_annotation(annotation) if annotation else None))

    return ast.arguments(
        posonlyargs=[],
        args=[_arg(name, annotation) for name, annotation in names],
        vararg=None,
        kwonlyargs=[],
        kw_defaults=[],
        kwarg=_arg(*kwarg) if kwarg else None,
        defaults=[]
    )


def create_function_def(
    name: str,
    arguments: ast.arguments,
    body: List[ast.stmt],
    decorators: Optional[List[str]] = None,
    returns: Optional[str] = None,
) -> ast.FunctionDef:
    """Creates an AST node for a function or method definition."""
    return add_location(ast.FunctionDef(
        name=name,
        args=arguments,
        body=body,
        decorator_list=[create_dotted_name(decorator) for decorator in decorators or []],
        returns=create_annotation(returns) if returns else None,
        type_params=[]
    ))


def create_class_def(name: str, bases: List[str], body: List[ast.stmt]) -> ast.ClassDef:
    """Creates an AST node for a class definition."""
    return add_location(ast.ClassDef(
        name=name,
        bases=[create_dotted_name(base) for base in bases],
        keywords=[],
        body=body,
        decorator_list=[],
        type_params=[]
    ))


def create_return(value: ast.expr) -> ast.Return:
    return add_location(ast.Return(value=value))


def create_expression(value: ast.expr) -> ast.Expr:
    return add_location(ast.Expr(value=value))


def module_to_source(body: List[ast.stmt], filename: str) -> str:
    """Unparses a list of statements into black-formatted module source."""
    module = ast.Module(body=body, type_ignores=[])
    ast.fix_missing_locations(module)
    code = ast.unparse(module)
    return format_python_code_using_black(filename, code + "\n")
