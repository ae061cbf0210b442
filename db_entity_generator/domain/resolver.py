"""
Identifier resolution for a whole table set.

``resolve_names`` is phase one of a generation run. It sees every table at
once, settles every class, module, property, navigation and inverse
collection name, writes the class names back into the descriptors and
returns a frozen ``ResolvedNames`` lookup. Phase two (compilation) only reads
that lookup.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Collection, Dict, List, Mapping, Optional, Set

from ..constants import NamingSuffixes, Placeholders
from ..exceptions import NameResolutionError
from .models import (
    ForeignKeyDescriptor,
    ForeignKeyIdentity,
    TableDescriptor,
    TableKey,
    link_foreign_keys,
)
from .naming import (
    base_identifier,
    container_module_name,
    disambiguation_base,
    make_unique,
    module_name_for,
    pluralize,
    sanitize_identifier,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedNames:
    """Read-only result of name resolution, keyed by table key or foreign key identity."""

    class_names: Mapping[TableKey, str]
    module_names: Mapping[TableKey, str]
    property_names: Mapping[TableKey, Mapping[str, str]]
    navigation_names: Mapping[ForeignKeyIdentity, str]
    collection_names: Mapping[ForeignKeyIdentity, str]

    def _lookup(self, mapping: Mapping, key, what: str):
        try:
            return mapping[key]
        except KeyError:
            raise NameResolutionError(
                f"No resolved {what} for {key}; it is not part of the resolved table set",
                field=what,
            ) from None

    def class_name(self, table_key: TableKey) -> str:
        return self._lookup(self.class_names, table_key, "class name")

    def module_name(self, table_key: TableKey) -> str:
        return self._lookup(self.module_names, table_key, "module name")

    def property_name(self, table_key: TableKey, column: str) -> str:
        return self._lookup(self._lookup(self.property_names, table_key, "property names"), column, "property name")

    def navigation_name(self, fk: ForeignKeyDescriptor) -> str:
        return self._lookup(self.navigation_names, fk.identity, "navigation name")

    def collection_name(self, fk: ForeignKeyDescriptor) -> str:
        return self._lookup(self.collection_names, fk.identity, "collection name")

    def __contains__(self, table_key: object) -> bool:
        return table_key in self.class_names


def resolve_class_names(tables: List[TableDescriptor], reserved: Collection[str] = ()) -> Dict[TableKey, str]:
    """
    Resolve a pairwise distinct class name for every table.

    Tables whose base identifier is unique in the set keep it. When two or
    more tables share a base identifier, every one of them is prefixed with
    its pascalized schema name (``public.order`` and ``sales.order`` become
    ``PublicOrder`` and ``SalesOrder``). Unique names are claimed first, then
    the schema-qualified ones; anything still colliding, with another table
    or with a ``reserved`` name, gets a numeric suffix in ``(schema, name)``
    order.
    """
    ordered = sorted(tables, key=lambda table: table.key)
    bases = {table.key: base_identifier(table.name) for table in ordered}
    base_counts = Counter(bases.values())

    candidates: Dict[TableKey, str] = {}
    for table in ordered:
        base = bases[table.key]
        if base_counts[base] > 1:
            schema_prefix = sanitize_identifier(table.schema, Placeholders.SCHEMA_NAME)
            candidates[table.key] = f"{schema_prefix}{base}"
            logger.debug(f"Base name '{base}' is shared; using '{candidates[table.key]}' for {table.qualified_name}")
        else:
            candidates[table.key] = base

    class_names: Dict[TableKey, str] = {}
    taken: Set[str] = set(reserved)
    unique_first = [t for t in ordered if base_counts[bases[t.key]] == 1]
    qualified_after = [t for t in ordered if base_counts[bases[t.key]] > 1]
    for table in unique_first + qualified_after:
        name = make_unique(candidates[table.key], taken)
        if name != candidates[table.key]:
            logger.debug(f"Class name '{candidates[table.key]}' already taken; using '{name}' for {table.qualified_name}")
        taken.add(name)
        class_names[table.key] = name

    return class_names


def _resolve_property_names(table: TableDescriptor, class_name: str) -> Dict[str, str]:
    taken = {class_name}
    names: Dict[str, str] = {}
    for column in table.columns:
        candidate = sanitize_identifier(column.name)
        if candidate == class_name:
            candidate += NamingSuffixes.PROPERTY
        name = make_unique(candidate, taken)
        taken.add(name)
        names[column.name] = name
    return names


def _sorted_outgoing(table: TableDescriptor) -> List[ForeignKeyDescriptor]:
    return sorted(table.foreign_keys, key=lambda fk: fk.constraint_name)


def _sorted_incoming(table: TableDescriptor) -> List[ForeignKeyDescriptor]:
    return sorted(table.referencing_foreign_keys, key=lambda fk: fk.identity)


def resolve_names(tables: List[TableDescriptor], container_name: Optional[str] = None) -> ResolvedNames:
    """
    Resolve every generated identifier for a table set.

    Foreign keys are first restricted to the set (see ``link_foreign_keys``).
    Resolution never fails on malformed identifiers: collisions are settled
    with fixed suffixes and then numeric ones.

    Args:
        tables: The complete table set of one generation run
        container_name: Class name of the container; no entity class or
            entity module may take it or its module name

    Returns:
        Frozen lookup of all resolved names

    Raises:
        NameResolutionError: If two tables share a schema and name, or a
            descriptor already carries a different class name
    """
    seen: Set[TableKey] = set()
    for table in tables:
        if table.key in seen:
            raise NameResolutionError(f"Table {table.qualified_name} appears more than once", table=table.qualified_name)
        seen.add(table.key)

    link_foreign_keys(tables)
    ordered = sorted(tables, key=lambda table: table.key)

    reserved_classes = {container_name} if container_name else set()
    reserved_modules = {container_module_name(container_name)} if container_name else set()

    class_names = resolve_class_names(ordered, reserved_classes)
    for table in ordered:
        table.assign_class_name(class_names[table.key])
        for fk in table.foreign_keys:
            target_class = class_names[fk.target_key]
            fk.assign_class_names(class_names[fk.source_key], target_class, pluralize(target_class))

    module_names: Dict[TableKey, str] = {}
    taken_modules: Set[str] = set(reserved_modules)
    for table in ordered:
        module = make_unique(module_name_for(class_names[table.key]), taken_modules, "_")
        taken_modules.add(module)
        module_names[table.key] = module

    property_names: Dict[TableKey, Dict[str, str]] = {}
    navigation_names: Dict[ForeignKeyIdentity, str] = {}
    collection_names: Dict[ForeignKeyIdentity, str] = {}

    for table in ordered:
        class_name = class_names[table.key]
        properties = _resolve_property_names(table, class_name)
        property_names[table.key] = properties
        taken = {class_name, *properties.values()}

        outgoing = _sorted_outgoing(table)
        fks_per_target = Counter(fk.target_class_name for fk in outgoing)
        for fk in outgoing:
            if fks_per_target[fk.target_class_name] > 1:
                candidate = disambiguation_base(fk.source_columns[0])
            else:
                candidate = fk.target_class_name
            name = make_unique(candidate, taken, NamingSuffixes.NAVIGATION)
            if name != candidate:
                logger.debug(f"Navigation '{candidate}' on {class_name} collides; using '{name}'")
            taken.add(name)
            navigation_names[fk.identity] = name

        incoming = _sorted_incoming(table)
        fks_per_source = Counter(fk.source_class_name for fk in incoming)
        for fk in incoming:
            if fks_per_source[fk.source_class_name] > 1:
                candidate = fk.source_class_name + pluralize(disambiguation_base(fk.source_columns[0]))
            else:
                candidate = pluralize(fk.source_class_name)
            name = make_unique(candidate, taken, NamingSuffixes.COLLECTION)
            if name != candidate:
                logger.debug(f"Collection '{candidate}' on {class_name} collides; using '{name}'")
            taken.add(name)
            collection_names[fk.identity] = name

    logger.debug(f"Resolved names for {len(ordered)} tables")
    return ResolvedNames(
        class_names=MappingProxyType(class_names),
        module_names=MappingProxyType(module_names),
        property_names=MappingProxyType(
            {key: MappingProxyType(names) for key, names in property_names.items()}
        ),
        navigation_names=MappingProxyType(navigation_names),
        collection_names=MappingProxyType(collection_names),
    )
