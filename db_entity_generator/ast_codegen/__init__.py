"""
AST-based code emission for DB Entity Generator.

Entity modules and the container module are assembled as ``ast`` trees,
unparsed and formatted with black.
"""

from .entities import generate_entity_module
from .container import generate_container_module, merge_container_text

__all__ = [
    'generate_entity_module',
    'generate_container_module',
    'merge_container_text',
]
