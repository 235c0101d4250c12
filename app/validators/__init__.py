"""
app/validators package marker.
"""

from app.validators.date_normalizer import format_date_iso, month_key, parse_date, serial_to_date

__all__ = [
    "format_date_iso",
    "month_key",
    "parse_date",
    "serial_to_date",
]
