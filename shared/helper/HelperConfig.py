"""Environment backed configuration for the draft review bridge."""

import logging
import os

from shared.logging.logging_setup import ColorLogger

# longest suffix first so "MB" is not read as "B"
_SIZE_UNITS: list[tuple[str, int]] = [
    ("GB", 1024 ** 3),
    ("MB", 1024 ** 2),
    ("KB", 1024),
    ("B", 1),
    ("", 1),
]
_TRUE_VALUES = ("true", "1", "yes", "on")


class HelperConfig:
    """Typed access to environment variables. Keys are case-insensitive.

    Every getter raises ValueError when the variable is unset (or empty) and
    no default was given.
    """

    def __init__(self, logger: logging.Logger | ColorLogger) -> None:
        self._logger = logger if isinstance(logger, ColorLogger) else ColorLogger(logger)

    def _read(self, key: str) -> tuple[str, str | None]:
        key = key.upper()
        raw = (os.getenv(key) or "").strip()
        return key, raw or None

    @staticmethod
    def _missing(key: str) -> ValueError:
        return ValueError(f"Environment variable '{key}' is not set.")

    ############### SCALARS ##################

    def get_string_val(self, key: str, default: str | None = None) -> str:
        key, raw = self._read(key)
        if raw is not None:
            return raw
        if default is None:
            raise self._missing(key)
        return default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Integers stay int, anything with a decimal point is parsed as float."""
        key, raw = self._read(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        key, raw = self._read(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        return raw.lower() in _TRUE_VALUES

    ############### COMPOUND #################

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list such as "[a,b,c]" and cast each element with element_type."""
        key, raw = self._read(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        if not (raw.startswith("[") and raw.endswith("]")):
            raise ValueError(f"Environment variable '{key}' must look like '[a{separator}b{separator}...]'. Got: '{raw}'")
        try:
            return [element_type(part.strip()) for part in raw[1:-1].split(separator) if part.strip()]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key}' holds an element that is not {element_type.__name__}: {e}")

    def get_size_val(self, key: str, default: int | None = None) -> int:
        """Read a byte size such as "104857600", "512KB" or "100MB".

        Args:
            key (str): Environment variable name.
            default (int | None): Size in bytes used when the variable is unset.

        Returns:
            int: The size in bytes.

        Raises:
            ValueError: If the variable is unset without default, or the value has an unknown unit.
        """
        key, raw = self._read(key)
        if raw is None:
            if default is None:
                raise self._missing(key)
            return default
        raw = raw.upper()
        for suffix, factor in _SIZE_UNITS:
            if raw.endswith(suffix):
                try:
                    return int(float(raw[: len(raw) - len(suffix)].strip()) * factor)
                except ValueError:
                    break
        raise ValueError(f"Environment variable '{key}' is not a valid size: '{raw}'.")

    ################ MISC ####################

    def get_root_dir(self) -> str:
        """ROOT_DIR, or the working directory when unset."""
        return os.getenv("ROOT_DIR") or os.getcwd()

    def get_logger(self) -> ColorLogger:
        return self._logger
