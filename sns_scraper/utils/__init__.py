"""Utility modules."""

from .normalize import epoch_to_date, parse_magnitude, parse_relative_or_absolute_date, to_int

__all__ = [
    "parse_magnitude",
    "parse_relative_or_absolute_date",
    "epoch_to_date",
    "to_int",
]
