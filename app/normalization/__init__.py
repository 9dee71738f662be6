"""
app/normalization package marker.
"""

from app.normalization.value_normalizer import (
    InvalidAmountError,
    composite_key,
    parse_amount,
    parse_date,
)

__all__ = [
    "InvalidAmountError",
    "composite_key",
    "parse_amount",
    "parse_date",
]
