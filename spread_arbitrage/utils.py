"""
Common helpers for the spread checker.

Logger construction and Decimal coercion shared by the dex modules.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Union


def get_logger(name: str, level: Union[str, int] = logging.INFO) -> logging.Logger:
    """
    Get a logger with the structured `time | level | name:line | message` format.

    The handler is attached once; later calls return the same logger untouched.
    logging_config.setup() removes it again when the CLI routes everything
    through the root handler.
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        logger.addHandler(handler)

    return logger


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a numeric value to Decimal without passing through binary floats.

    Floats are converted via their shortest repr, so 0.1 becomes Decimal("0.1").

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal value: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a decimal value: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Decimal value must be finite: {value!r}")
    return result
