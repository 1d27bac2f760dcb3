"""
Validation utilities
"""
import math
import re
import uuid
from typing import Any, Iterable, List, Optional, Tuple

from fastapi import HTTPException

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_id(value: Optional[str], label: str = "ID") -> str:
    """
    Validate a record id (UUID string)

    Raises:
        HTTPException: 400 if the id is missing or malformed
    """
    if not value:
        raise HTTPException(status_code=400, detail=f"{label} is required")
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label.lower()} format")


def canonical_id(value: Any) -> Optional[str]:
    """The lower-case dashed form of a UUID string, or None if it is not one"""
    if not isinstance(value, str) or not value:
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        return None


def canonical_ids(values: Any) -> List[str]:
    """Canonical ids from a list, dropping anything malformed and duplicates"""
    if not isinstance(values, list):
        return []
    ids = (canonical_id(value) for value in values)
    return list(dict.fromkeys(value for value in ids if value))


def normalize_email(email: Optional[str]) -> str:
    """
    Trim and lower-case an email address

    Raises:
        HTTPException: 400 if the email is malformed
    """
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    return email


def validate_choice(value: Optional[str], choices: Iterable[str], label: str) -> str:
    """
    Validate that a value is one of the allowed choices

    Raises:
        HTTPException: 400 listing the valid choices
    """
    choices = list(choices)
    if value not in choices:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {label}. Must be one of: {', '.join(choices)}"
        )
    return value


def validate_time_of_day(value: str) -> str:
    """Validate an 'HH:MM' 24h time string"""
    if not isinstance(value, str) or not TIME_RE.match(value):
        raise HTTPException(status_code=400, detail=f"Invalid time '{value}'. Use HH:MM")
    return value


def validate_pagination(limit: int, page: int, max_limit: int = 200) -> Tuple[int, int, int]:
    """
    Validate limit/page query parameters

    Returns:
        (limit, page, offset)
    """
    if limit < 1 or limit > max_limit:
        raise HTTPException(status_code=400, detail=f"limit must be between 1 and {max_limit}")
    if page < 1:
        raise HTTPException(status_code=400, detail="page must be >= 1")
    return limit, page, (page - 1) * limit


def pagination_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": -(-total // limit) if limit else 0,
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_range(errors: List[dict], field: str, value: Any, low: float, high: Optional[float],
                 message: str, integer: bool = False) -> None:
    # inf and nan are not valid JSON, so they are reported as text
    if isinstance(value, float) and not math.isfinite(value):
        errors.append({"field": field, "message": message, "value": str(value)})
        return
    number = value
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            errors.append({"field": field, "message": message, "value": value})
            return
    try:
        valid = _is_number(number) and math.isfinite(number) and not (integer and float(number) != int(number))
    except OverflowError:
        # integers too large for a float
        valid = False
    if not valid:
        errors.append({"field": field, "message": message, "value": value})
        return
    if number < low or (high is not None and number > high):
        errors.append({"field": field, "message": message, "value": value})


def validate_profile_fields(payload: dict) -> List[dict]:
    """
    Check profile/quiz bounds; returns a list of {field, message, value}
    """
    errors: List[dict] = []

    if payload.get("age") is not None:
        _check_range(errors, "age", payload["age"], 0, 150,
                     "Age must be between 0 and 150", integer=True)
    if payload.get("gender") is not None and payload["gender"] not in ("male", "female", "other"):
        errors.append({"field": "gender", "message": "Gender must be male, female, or other",
                       "value": payload["gender"]})
    if payload.get("weight") is not None:
        _check_range(errors, "weight", payload["weight"], 0, 1000, "Weight must be between 0 and 1000")
    if payload.get("height") is not None:
        _check_range(errors, "height", payload["height"], 0, 300, "Height must be between 0 and 300")

    list_rules = [
        ("sleepHours", 0, 24, "Sleep hours must be between 0 and 24", False),
        ("exerciseDuration", 0, None, "Exercise duration must be a positive number", True),
        ("waterIntake", 0, None, "Water intake must be a positive number", False),
        ("stepGoal", 0, None, "Step goal must be a positive number", True),
    ]
    for field, low, high, message, integer in list_rules:
        values = payload.get(field)
        if values is None:
            continue
        if not isinstance(values, list):
            errors.append({"field": field, "message": f"{field} must be a list", "value": values})
            continue
        for index, item in enumerate(values):
            _check_range(errors, f"{field}[{index}]", item, low, high, message, integer=integer)

    selected = payload.get("selectedDoctors")
    if selected is not None and (
        not isinstance(selected, list) or any(canonical_id(item) is None for item in selected)
    ):
        errors.append({"field": "selectedDoctors", "message": "selectedDoctors must be a list of doctor IDs",
                       "value": selected})

    return errors
