from __future__ import annotations

from datetime import date, datetime
from typing import Any

from .errors import ProductionValidationError
from .types import ProductionStage

MAX_QUANTITY = 100000
MAX_PRIORITY = 4
MAX_RECIPE_ID_LENGTH = 100
MAX_NAME_LENGTH = 255
MAX_NOTES_LENGTH = 2000


def parse_production_date(value: Any) -> date:
    """Accept a ``date`` or an ISO ``YYYY-MM-DD`` string; reject anything else."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ProductionValidationError(
                f"Invalid production date {value!r}; expected YYYY-MM-DD"
            ) from exc
    raise ProductionValidationError(f"Invalid production date {value!r}; expected YYYY-MM-DD")


def require_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ProductionValidationError(f"{field_name} must be an integer")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise ProductionValidationError(f"{field_name} must be an integer")
    return value


def require_positive_quantity(value: Any, field_name: str = "quantity") -> int:
    quantity = require_int(value, field_name)
    if quantity <= 0:
        raise ProductionValidationError(f"{field_name} must be greater than zero")
    if quantity > MAX_QUANTITY:
        raise ProductionValidationError(f"{field_name} cannot exceed {MAX_QUANTITY}")
    return quantity


def validate_priority(value: Any) -> int:
    priority = require_int(value, "priority")
    if not 0 <= priority <= MAX_PRIORITY:
        raise ProductionValidationError(f"priority must be between 0 and {MAX_PRIORITY}")
    return priority


def coerce_stage(value: Any) -> ProductionStage:
    stage = require_int(value, "stage")
    try:
        return ProductionStage(stage)
    except ValueError as exc:
        valid = ", ".join(f"{s.value} ({s.name})" for s in ProductionStage)
        raise ProductionValidationError(f"Unknown stage {stage}; expected one of {valid}") from exc


def require_recipe_id(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ProductionValidationError("recipe_id is required")
    recipe_id = str(value).strip()
    if len(recipe_id) > MAX_RECIPE_ID_LENGTH:
        raise ProductionValidationError(f"recipe_id cannot exceed {MAX_RECIPE_ID_LENGTH} characters")
    return recipe_id


def optional_text(value: Any, field_name: str, max_length: int = MAX_NAME_LENGTH):
    """Strip free text; blank becomes ``None``."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ProductionValidationError(f"{field_name} must be a string")
    text = value.strip()
    if len(text) > max_length:
        raise ProductionValidationError(f"{field_name} cannot exceed {max_length} characters")
    return text or None
