"""
Unit conversions from the API's metric values to imperial units.

Every converter passes ``None`` through unchanged so that sensors a device
does not carry (a SKY has no barometer) stay unset instead of failing.
"""

from typing import Optional

MM_PER_INCH = 25.4
MB_PER_INHG = 33.864
MPH_PER_MPS = 2.23694
MILES_PER_KM = 0.621371


def celsius_to_fahrenheit(value: Optional[float]) -> Optional[float]:
    """Convert degrees Celsius to degrees Fahrenheit (1 decimal)."""
    if value is None:
        return None
    return round(value * 9 / 5 + 32, 1)


def mps_to_mph(value: Optional[float]) -> Optional[float]:
    """Convert metres per second to miles per hour (1 decimal)."""
    if value is None:
        return None
    return round(value * MPH_PER_MPS, 1)


def millibar_to_inhg(value: Optional[float]) -> Optional[float]:
    """Convert millibar to inches of mercury (3 decimals)."""
    if value is None:
        return None
    return round(value / MB_PER_INHG, 3)


def mm_to_inch(value: Optional[float]) -> Optional[float]:
    """Convert millimetres to inches (2 decimals)."""
    if value is None:
        return None
    return round(value / MM_PER_INCH, 2)


def inch_to_mm(value: Optional[float]) -> Optional[float]:
    """Convert inches to millimetres (unrounded)."""
    if value is None:
        return None
    return value * MM_PER_INCH


def km_to_miles(value: Optional[float]) -> Optional[float]:
    """Convert kilometres to miles (1 decimal)."""
    if value is None:
        return None
    return round(value * MILES_PER_KM, 1)
