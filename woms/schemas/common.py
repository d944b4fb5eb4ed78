import uuid
from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every API payload: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


T = TypeVar("T", bound=CamelModel)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class Page(CamelModel, Generic[T]):
    items: List[T]
    pagination: Pagination


class UserRef(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: Optional[str] = None


def dump(schema: Type[BaseModel], obj: Any) -> Any:
    """Serialize an ORM object (or list of them) through a response schema."""
    if isinstance(obj, list):
        return [schema.model_validate(o).model_dump(by_alias=True, mode="json") for o in obj]
    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")


def envelope(data: Any = None, message: Optional[str] = None) -> dict:
    payload: dict = {"success": True}
    if data is not None:
        payload["data"] = data
    if message:
        payload["message"] = message
    return payload
