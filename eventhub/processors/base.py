from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from eventhub.domain.errors import InvalidJobPayloadError

PayloadT = TypeVar("PayloadT", bound=BaseModel)

def parse_payload(model: type[PayloadT], payload: dict[str, Any]) -> PayloadT:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidJobPayloadError(f"Invalid {model.__name__} payload: {fields}") from e
