import logging

import black
from black import FileMode, format_str as black_format_str

from db_entity_generator.constants import BLACK_LINE_LENGTH

logger = logging.getLogger(__name__)

BLACK_FORMATTER_MODE = FileMode(line_length=BLACK_LINE_LENGTH)


def format_python_code_using_black(filename: str, code_string: str) -> str:
    """Run Black over generated source, returning it untouched when Black cannot handle it."""
    try:
        return black_format_str(code_string, mode=BLACK_FORMATTER_MODE)
    except black.NothingChanged:
        return code_string
    except Exception as e:
        logger.warning(f"Black could not format {filename}, writing it as generated: {e}")
        return code_string
