"""
Request validation.

Field-level constraints (required text, lengths, ranges, formats, email
addresses) are declared on the request models with pydantic. Rules that span
several fields or depend on the clock are plain functions taking the request
and returning (field, message) failures; feature modules register them next to
the request types.

The validation behavior re-checks the model constraints (a request built with
`model_copy(update=...)` or `model_construct` skips them), runs the functions
and raises a single ValidationError with every failure grouped by field.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.core.errors import ValidationError

Failure = Tuple[str, str]
Validator = Callable[[Any], Iterable[Failure]]

# Pydantic error types rendered in the API's own wording; others keep pydantic's message.
_MESSAGES = {
    "missing": "{label} is required.",
    "string_too_short": "{label} is required.",
    "string_too_long": "{label} must not exceed {max_length} characters.",
    "too_short": "{label} must not be empty.",
    "greater_than_equal": "{label} must be greater than or equal to {ge}.",
    "less_than_equal": "{label} must be less than or equal to {le}.",
    "string_pattern_mismatch": "{label} has an invalid format.",
}


class Rules:
    """
    Small accumulator for rules pydantic constraints cannot express.

        rules = Rules()
        rules.check(request.confirm_password == request.password, "confirm_password", "Passwords do not match")
        return rules.failures
    """

    def __init__(self) -> None:
        self.failures: List[Failure] = []

    def check(self, condition: bool, field: str, message: str) -> "Rules":
        if not condition:
            self.failures.append((field, message))
        return self

    def required(self, field: str, value: Any, message: Optional[str] = None) -> "Rules":
        empty = value is None or (isinstance(value, str) and not value.strip())
        return self.check(not empty, field, message or f"{_label(field)} is required.")


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


# PUBLIC_INTERFACE
def group_pydantic_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    """Turn pydantic's error list into messages keyed by dotted field path."""
    failures: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(loc) or "request"
        names = [part for part in loc if not part.isdigit()]
        template = _MESSAGES.get(error.get("type", ""))
        if template:
            message = template.format(label=_label(names[-1] if names else field), **(error.get("ctx") or {}))
        else:
            message = error.get("msg", "Invalid value")
        failures.setdefault(field, []).append(message)
    return failures


# PUBLIC_INTERFACE
def constraint_failures(request: BaseModel) -> Dict[str, List[str]]:
    """Re-validate a request against its model's field constraints."""
    try:
        type(request).model_validate(request.model_dump(warnings=False))
    except PydanticValidationError as exc:
        return group_pydantic_errors(exc)
    return {}


# PUBLIC_INTERFACE
def run_validators(request: Any, validators: Iterable[Validator]) -> None:
    """Check field constraints and run validators; raise ValidationError with every failure grouped by field."""
    failures = constraint_failures(request) if isinstance(request, BaseModel) else {}
    for validator in validators:
        for field, message in validator(request):
            failures.setdefault(field, []).append(message)
    if failures:
        raise ValidationError(failures)
