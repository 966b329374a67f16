"""Coercion of service inputs into request models."""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def validate_request(model: type[RequestModel], data: RequestModel | Mapping[str, Any] | None) -> RequestModel:
    """
    Coerce input into ``model``.

    Instances of ``model`` pass through; mappings are validated.

    Raises:
        ValidationError: With every violated field when a mapping fails validation
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(dict(data or {}))
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e
