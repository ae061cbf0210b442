"""
Naming convention utilities for DB Entity Generator.

Pure functions that turn raw catalog identifiers into legal Python
identifiers. Every function here is total: empty or fully invalid input
falls back to a fixed placeholder instead of raising.
"""

import keyword
import logging
import re
from typing import Collection, Optional

import inflect

from ..constants import IDENTIFIER_MARKERS, Placeholders

logger = logging.getLogger(__name__)

# Initialize inflect engine for pluralization
p = inflect.engine()

_INVALID_CHARACTERS = re.compile(r"[^A-Za-z0-9_]")
_SEPARATORS = re.compile(r"[_\s]+")


def _legalize(name: str, placeholder: str) -> str:
    """Make ``name`` a usable identifier: non-empty, no leading digit, no keyword."""
    if not name:
        return placeholder
    if name[0].isdigit():
        name = "_" + name
    if keyword.iskeyword(name):
        name += "_"
    return name


def pascalize(name: str) -> str:
    """
    Upper-case the first letter of every separator-delimited word and drop the separators.

    A separator is kept in front of a word starting with a digit so that
    ``address_2`` becomes ``Address_2`` rather than ``Address2``.

    Example:
        >>> pascalize("photo_file_id")
        'PhotoFileId'
    """
    result = ""
    for word in _SEPARATORS.split(name):
        if not word:
            continue
        if result and word[0].isdigit():
            result += "_"
        result += word[0].upper() + word[1:]
    return result


def to_snake_case(name: str) -> str:
    """
    Convert CamelCase or PascalCase to snake_case.

    Example:
        >>> to_snake_case("UserAccount")
        'user_account'
        >>> to_snake_case("XMLHttpRequest")
        'xml_http_request'
    """
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")

    name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    name = re.sub("__([A-Z])", r"_\1", name)
    name = re.sub("([a-z0-9])([A-Z])", r"\1_\2", name)
    return name.lower()


def singularize(word: str) -> str:
    """
    Singular form of ``word``, or ``word`` itself when it already is singular.

    inflect strips the ``s`` of singulars such as ``address`` or ``bus``, so its
    answer is only taken when inflect would pluralize ``word`` by a plain
    ``s`` (it recognizes no singular ending) and pluralizing the answer gives
    ``word`` back.

    Example:
        >>> singularize("addresses"), singularize("address"), singularize("bus")
        ('address', 'address', 'bus')
    """
    if not word:
        return word
    lowered = word.lower()
    try:
        singular = p.singular_noun(word)
        if not singular or singular == word:
            return word
        if p.plural_noun(lowered) != lowered + "s":
            return word
        if p.plural_noun(singular.lower()) != lowered:
            return word
    except Exception as e:
        logger.error(f"Inflect singularization failed for '{word}': {e}. Keeping the word as is.")
        return word
    return singular


def pluralize(word: str) -> str:
    """Plural form of ``word``; falls back to appending ``s``."""
    if not word:
        return word
    try:
        plural = p.plural_noun(word)
    except Exception as e:
        logger.error(f"Inflect pluralization failed for '{word}': {e}. Falling back to adding 's'.")
        return word + "s"
    return plural or word + "s"


def sanitize_identifier(raw: Optional[str], placeholder: str = Placeholders.MEMBER_NAME) -> str:
    """
    Turn a raw column (or schema) name into a PascalCase Python identifier.

    Characters outside ``[A-Za-z0-9_]`` become separators, words are
    pascalized, a leading digit gets an underscore prefix and keywords get
    an underscore suffix.

    Example:
        >>> sanitize_identifier("first name")
        'FirstName'
        >>> sanitize_identifier("2fa_code")
        '_2faCode'
    """
    cleaned = _INVALID_CHARACTERS.sub("_", raw or "")
    return _legalize(pascalize(cleaned), placeholder)


def base_identifier(raw_table_name: Optional[str]) -> str:
    """
    Canonical grouping key and default class name for a raw table name.

    Invalid characters become separators, leading and trailing separators are
    stripped, the last word is singularized and the result is pascalized.
    ``order``, ``orders`` and ``orders_`` all yield ``Order``. Every place that
    groups tables by base name goes through this function.
    """
    cleaned = _INVALID_CHARACTERS.sub("_", raw_table_name or "").strip("_")
    words = [word for word in _SEPARATORS.split(cleaned) if word]
    if not words:
        return Placeholders.CLASS_NAME
    words[-1] = singularize(words[-1])
    return _legalize(pascalize("_".join(words)), Placeholders.CLASS_NAME)


def disambiguation_base(source_column: Optional[str]) -> str:
    """
    Name fragment distinguishing several foreign keys between the same two tables.

    The sanitized source column loses a trailing ``Id``/``ID`` marker. Both the
    navigation side and the inverse collection side derive their names from
    this function, given the same column.

    Example:
        >>> disambiguation_base("photo_file_id")
        'PhotoFile'
        >>> disambiguation_base("ownerID")
        'Owner'
        >>> disambiguation_base("id")
        'Id'
    """
    name = sanitize_identifier(source_column)
    for marker in IDENTIFIER_MARKERS:
        if name.endswith(marker) and len(name) > len(marker):
            stripped = name[: -len(marker)].rstrip("_")
            if stripped:
                return _legalize(stripped, name)
            break
    return name


def schema_package_name(schema: Optional[str]) -> str:
    """Lower-case package directory name for a schema."""
    cleaned = _INVALID_CHARACTERS.sub("_", schema or "").strip("_").lower()
    return _legalize(cleaned, Placeholders.SCHEMA_NAME.lower())


def module_name_for(class_name: str) -> str:
    """Module (file) name holding the given entity class."""
    return _legalize(to_snake_case(class_name).strip("_"), Placeholders.MODULE_NAME)


def container_module_name(container_name: str) -> str:
    return to_snake_case(container_name)


def make_unique(candidate: str, taken: Collection[str], suffix: Optional[str] = None) -> str:
    """
    Return ``candidate`` if free, else try ``candidate + suffix``, then numeric suffixes.

    Numeric suffixes start at 2 and are appended to the suffixed form when a
    suffix was given.
    """
    if candidate not in taken:
        return candidate
    if suffix:
        candidate += suffix
        if candidate not in taken:
            return candidate
    counter = 2
    while f"{candidate}{counter}" in taken:
        counter += 1
    return f"{candidate}{counter}"
