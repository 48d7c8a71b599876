"""
Parsers for free-text technical data (price ranges, engine size, torque, ...).

Catalog data arrives from admin forms, CSV files and scraped dumps with
values such as "120 Nm", "14.5 L" or "RD$50,000 - RD$75,000". These helpers
extract the numeric part so it can be stored in the derived columns used for
filtering and sorting. None of them raise on malformed input: anything that
cannot be parsed yields None.
"""

import re
from typing import NamedTuple

# Characters dropped before looking for a price: currency marker, blanks, thousands separators
_PRICE_NOISE = re.compile(r"[RD$\s,]", re.IGNORECASE)
_PRICE_RANGE = re.compile(r"(\d+\.?\d*)\s*[-–—]\s*(\d+\.?\d*)")
_NUMBER = re.compile(r"(\d+\.?\d*)")
_LEADING_INT = re.compile(r"^\s*(-?\d+)")

ENGINE_SIZE_SUFFIXES = ("cm³", "cm3", "cc")
TORQUE_SUFFIXES = ("N·m", "N.m", "Nm")
FUEL_CAPACITY_SUFFIXES = ("Litros", "Liters", "lts", "L")
WEIGHT_SUFFIXES = ("kilos", "kgs", "kg")
HORSEPOWER_SUFFIXES = ("BHP", "HP", "CV", "PS")

TRUTHY_VALUES = frozenset({"1", "true", "yes", "si", "sí", "on", "y"})


class PriceRange(NamedTuple):
    """Inclusive price range; a single price has min == max."""

    min: float
    max: float


def _is_blank(value: object) -> bool:
    return value is None or str(value).strip() == ""


def parse_price_range(value: str | None) -> PriceRange | None:
    """
    Parse a price range string into min/max values.

    Handles "RD$50,000 - RD$75,000", "$50000-75000" and "50000".

    Args:
        value: Free-text price or price range

    Returns:
        PriceRange or None if no number is present
    """
    if _is_blank(value):
        return None

    clean = _PRICE_NOISE.sub("", str(value))

    match = _PRICE_RANGE.search(clean)
    if match:
        return PriceRange(float(match.group(1)), float(match.group(2)))

    match = _NUMBER.search(clean)
    if match:
        amount = float(match.group(1))
        return PriceRange(amount, amount)

    return None


def parse_numeric(value: str | None, suffixes: tuple[str, ...] = ()) -> float | None:
    """
    Parse the first number of a string after removing unit suffixes.

    Suffixes are removed case-insensitively, then blanks and commas are
    dropped, so "1,250 kg" parses as 1250.0.

    Args:
        value: Free-text value such as "165 cc" or "18.5 Nm"
        suffixes: Unit suffixes to strip, longest first

    Returns:
        Parsed float or None
    """
    if _is_blank(value):
        return None

    clean = str(value)
    for suffix in suffixes:
        clean = re.sub(re.escape(suffix), "", clean, flags=re.IGNORECASE)

    clean = re.sub(r"[\s,]", "", clean)

    match = _NUMBER.search(clean)
    if match:
        return float(match.group(1))
    return None


def parse_engine_size(value: str | None) -> float | None:
    """Parse engine displacement ("150cc", "150 cm³", "1500")."""
    return parse_numeric(value, ENGINE_SIZE_SUFFIXES)


def parse_torque(value: str | None) -> float | None:
    """Parse torque ("15 Nm", "15N·m")."""
    return parse_numeric(value, TORQUE_SUFFIXES)


def parse_fuel_capacity(value: str | None) -> float | None:
    """Parse fuel tank capacity ("12L", "12 Litros", "12 liters")."""
    return parse_numeric(value, FUEL_CAPACITY_SUFFIXES)


def parse_weight(value: str | None) -> float | None:
    """Parse weight ("150kg", "150 kilos")."""
    return parse_numeric(value, WEIGHT_SUFFIXES)


def parse_horsepower(value: str | None) -> float | None:
    """Parse power ("18.76 BHP", "150 HP", "110 CV")."""
    return parse_numeric(value, HORSEPOWER_SUFFIXES)


def parse_int(value: object, digits_only: bool = False) -> int | None:
    """
    Lenient integer coercion for form and CSV cells.

    Args:
        value: Raw cell value
        digits_only: Keep only digits before converting ("160 cc" -> 160)

    Returns:
        Integer or None for blank/unparseable input
    """
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)

    text = str(value)
    if digits_only:
        digits = re.sub(r"[^0-9]", "", text)
        return int(digits) if digits else None

    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def parse_bool(value: object) -> bool:
    """Interpret yes/si/true/1/on (any case) as True, everything else as False."""
    if isinstance(value, bool):
        return value
    if _is_blank(value):
        return False
    return str(value).strip().lower() in TRUTHY_VALUES


def format_price(amount: float, currency: str = "DOP") -> str:
    """
    Format an amount without decimals, e.g. "RD$125,000".

    Args:
        amount: Price
        currency: ISO currency code; DOP is rendered with the RD$ prefix

    Returns:
        Display string
    """
    prefix = "RD$" if currency == "DOP" else f"{currency} "
    return f"{prefix}{amount:,.0f}"


def format_price_range(price_range: PriceRange | None, currency: str = "DOP") -> str:
    """Format a PriceRange for display ("N/A" when missing)."""
    if price_range is None:
        return "N/A"
    if price_range.min == price_range.max:
        return format_price(price_range.min, currency)
    return f"{format_price(price_range.min, currency)} - {format_price(price_range.max, currency)}"
