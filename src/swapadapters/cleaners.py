"""Validation of untyped exchange replies.

Each remote payload is described by a pydantic model. ``parse_payload``
checks a decoded JSON value against a model and reports the outcome
without raising, so callers decide which failures are fatal.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any, Generic, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from swapadapters.errors import ExchangeError

M = TypeVar("M", bound=BaseModel)


def _as_decimal(value: Any) -> Any:
    # JSON numbers arrive as floats; go through str to keep their printed digits
    if isinstance(value, float):
        return str(value)
    return value


# Finite decimal from a JSON string or number
Amount = Annotated[Decimal, BeforeValidator(_as_decimal)]
PositiveAmount = Annotated[Amount, Field(gt=0)]


def plain(value: Decimal) -> str:
    """Decimal as a plain string without exponent or trailing zeros."""
    text = format(value.normalize(), "f")
    return text if text != "-0" else "0"


class Payload(BaseModel):
    """Base for exchange payloads; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


@dataclass
class ParseResult(Generic[M]):
    """Outcome of validating a payload: a value or a reason."""

    value: Optional[M] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> M:
        """Return the parsed value or raise ExchangeError with the reason."""
        if self.error is not None:
            raise ExchangeError(self.error)
        return self.value


def parse_payload(model: type[M], payload: Any) -> ParseResult[M]:
    """Validate ``payload`` against ``model``."""
    try:
        return ParseResult(value=model.model_validate(payload))
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "<root>" for err in e.errors()
        )
        return ParseResult(error=f"Invalid {model.__name__} reply ({fields}): {e.error_count()} error(s)")
