from typing import Annotated, Any
from pydantic import BaseModel, BeforeValidator
from pydantic.alias_generators import to_camel


def _as_str_id(value: Any) -> Any:
    return str(value) if isinstance(value, int) else value


# Row ids are integers in the database but strings on the wire, since the
# configured administrator's id is "admin".
StrId = Annotated[str, BeforeValidator(_as_str_id)]


class CamelModel(BaseModel):
    """snake_case in Python, camelCase in JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class MessageResponse(CamelModel):
    message: str
