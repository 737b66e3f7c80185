"""Resolve engine classes laid out as ``<package>.<engine>.<Prefix><Engine>``."""

import importlib


def normalize_engine_name(raw: str) -> str:
    """Engine names match case-insensitively and are capitalised for the class name."""
    return raw.strip().lower().capitalize()


def load_engine_class(package: str, prefix: str, engine: str, label: str) -> type:
    """Import ``<package>.<engine>.<prefix><Engine>`` and return the class.

    Args:
        package (str): Dotted family package, e.g. "shared.clients.content".
        prefix (str): Class name prefix, e.g. "ContentClient".
        engine (str): Engine name in any case, e.g. "tldw".
        label (str): Family name used in the error message, e.g. "content".

    Raises:
        ValueError: If no such module or class exists.
    """
    engine = normalize_engine_name(engine)
    class_name = f"{prefix}{engine}"
    try:
        module = importlib.import_module(f"{package}.{engine.lower()}.{class_name}")
        return getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Unsupported {label} engine '{engine}'. Error: {e}") from e
