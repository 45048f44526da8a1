"""
Input validation utilities.
Builds pydantic input models and reports failures through the exception hierarchy.
"""
from typing import Type, TypeVar

import pydantic

from recovery.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def build_input(model: Type[ModelT], user_id: int, operation: str, **data) -> ModelT:
    """
    Build an input model, mapping pydantic errors to ValidationError

    Only the first failing field is reported.

    Raises:
        ValidationError: with field, value and message of the first failure
    """
    try:
        return model(**data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError(
            first.get("msg", "Invalid input"),
            field=field,
            value=first.get("input"),
            user_id=str(user_id),
            operation=operation
        ) from e
