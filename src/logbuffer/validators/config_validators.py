import logging


def to_uppercase(value: str | None) -> str | None:
    """
    Converts a string to uppercase if it's not None.
    """
    if value is None:
        return None
    return value.upper()

def to_lowercase(value: str | None) -> str | None:
    """
    Converts a string to lowercase if it's not None.
    """
    if value is None:
        return None
    return value.lower()

def to_level(value):
    """
    Converts a level name ('debug', 'INFO', ...) to its numeric logging level.

    Anything that is not a known level name is returned unchanged so that
    booleans, integers and truthy strings ('true', '1') keep their meaning.
    """
    if not isinstance(value, str):
        return value
    level = logging.getLevelName(to_uppercase(value.strip()))
    if isinstance(level, int):
        return level
    return value
