"""
Scheduling configuration module.

This module defines the fixed scheduling parameters and the parsing/validation
of the per-lot production rates stored in app_config.
"""

import math
import re
from typing import Any, Dict, Mapping


class SchedulingConfigurationError(ValueError):
    """Raised when the scheduling configuration cannot be used."""


class InvalidProductionRateError(SchedulingConfigurationError):
    """Raised for a production rate that is not a positive finite number."""

    def __init__(self, lote, rate):
        self.lote = lote
        self.rate = rate
        where = f" for lote {lote}" if lote is not None else ""
        super().__init__(
            f"Invalid production rate{where}: {rate!r} (must be a positive number of m² per working day)"
        )


class MissingProductionRateError(SchedulingConfigurationError):
    """Raised when a lot has areas to schedule but no configured rate."""

    def __init__(self, lote):
        self.lote = lote
        super().__init__(f"No production rate configured for lote {lote}")


class SchedulingConfig:
    """
    Configuration for scheduling calculations.
    """

    # Only areas tagged with this service take part in the mowing schedule
    MOWING_SERVICE = 'rocagem'

    # Size assumed for areas registered without metragem_m2
    DEFAULT_AREA_SIZE_M2: float = 1000.0

    # app_config keys look like "lote1", "lote2", ...
    LOT_KEY_PATTERN = re.compile(r'^lote(\d+)$')

    @classmethod
    def lot_key(cls, lote: int) -> str:
        """Storage key for a lot's production rate (1 -> 'lote1')."""
        return f"lote{lote}"


def validate_production_rate(rate: Any, lote=None) -> float:
    """
    Validate a production rate and return it as a float.

    Args:
        rate: Candidate rate in m² per working day
        lote: Lot identifier, only used in the error message

    Returns:
        float: The validated rate

    Raises:
        InvalidProductionRateError: If rate is not a positive finite number
    """
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        raise InvalidProductionRateError(lote, rate)

    rate = float(rate)
    if not math.isfinite(rate) or rate <= 0:
        raise InvalidProductionRateError(lote, rate)

    return rate


def parse_production_rates(raw: Mapping[Any, Any], strict: bool = False) -> Dict[int, float]:
    """
    Turn a stored rate record into a {lote: rate} mapping.

    Accepts the app_config shape ({"lote1": 85000, "lote2": 70000}) as well
    as already-keyed mappings ({1: 85000}). Keys that do not name a lot
    (e.g. metaMensal) are ignored unless strict is set. Every lot rate is
    validated.

    Raises:
        InvalidProductionRateError: If any lot rate is invalid
        SchedulingConfigurationError: If strict and a key does not name a lot
    """
    rates: Dict[int, float] = {}
    if not raw:
        return rates

    for key, value in raw.items():
        lote = _lot_from_key(key)
        if lote is None:
            if strict:
                raise SchedulingConfigurationError(
                    f"Unknown production rate key {key!r} (expected lote1, lote2, ...)"
                )
            continue
        rates[lote] = validate_production_rate(value, lote)

    return rates


def _lot_from_key(key):
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    match = SchedulingConfig.LOT_KEY_PATTERN.match(str(key).strip())
    if match:
        return int(match.group(1))
    return None
