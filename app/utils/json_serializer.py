"""
Conversion of audit metadata to values a JSON column accepts
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel

from app.utils.datetime_utils import iso_8601_utc


def to_json_safe(value: Any) -> Any:
    """
    Recursively convert a value for storage in audit_logs.meta_json

    Datetimes use the same UTC "Z" form as API responses; Decimals (hours,
    hourly rates) are kept exact as strings.
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, int, float)):
        return value
    if isinstance(value, datetime):
        return iso_8601_utc(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, BaseModel):
        return to_json_safe(value.model_dump())
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_safe(item) for item in value]
    return str(value)
