"""
Shared field types for request and response schemas.
"""

from decimal import Decimal
from typing import Annotated
from pydantic import AfterValidator, PlainSerializer
from renteasy.utils.months import is_valid_month


def _check_month(value: str) -> str:
    value = value.strip()
    if not is_valid_month(value):
        raise ValueError("Month must be in YYYY-MM format")
    return value


# Amounts stay Decimal internally and render as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

MonthToken = Annotated[str, AfterValidator(_check_month)]
