from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from qtrack.core.errors import ValidationFailed

T = TypeVar("T")


class RequestModel(BaseModel):
    """Accepts both snake_case and camelCase keys; unknown keys are ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def error_details(exc: ValidationError) -> list[dict]:
    return [{"loc": [str(x) for x in err["loc"]], "msg": err["msg"], "type": err["type"]} for err in exc.errors()]


def validate_payload(schema: type[T] | TypeAdapter, payload: Any) -> T:
    """Validate a request body; pydantic failures become ValidationFailed (400)."""

    adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
    try:
        return adapter.validate_python(payload if payload is not None else {})
    except ValidationError as e:
        details = error_details(e)
        first = details[0] if details else None
        if first:
            where = ".".join(first["loc"])
            message = f"Validation error: {where}: {first['msg']}" if where else f"Validation error: {first['msg']}"
        else:
            message = "Validation error"
        raise ValidationFailed(message, details=details) from e
