"""
app/validators package marker.
"""

from app.validators.import_validator import amount_or_zero, raw_amount_for, validate_rows

__all__ = [
    "raw_amount_for",
    "amount_or_zero",
    "validate_rows",
]
