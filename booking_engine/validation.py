"""Turn pydantic failures into the engine's ValidationError."""

from typing import Any, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from booking_engine.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


def as_engine_error(exc: PydanticValidationError, model_name: str) -> ValidationError:
    """Prefer an engine error raised inside a validator; otherwise summarize every failure."""
    for err in exc.errors():
        original = (err.get("ctx") or {}).get("error")
        if isinstance(original, ValidationError):
            return original
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
        for err in exc.errors()
    )
    return ValidationError(f"Invalid {model_name}: {details}")


def parse_model(model_cls: type[M], payload: Union[M, dict[str, Any]]) -> M:
    if isinstance(payload, model_cls):
        return payload
    try:
        return model_cls.model_validate(payload)
    except PydanticValidationError as exc:
        raise as_engine_error(exc, model_cls.__name__) from exc
