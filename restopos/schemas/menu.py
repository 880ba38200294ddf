"""Menu API schemas."""

from pydantic import BaseModel, ConfigDict, Field

from restopos.schemas.common import Money, UtcDatetime


class MenuItemCreate(BaseModel):
    """Payload for adding one dish."""

    category: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price: Money = Field(ge=0)


class MenuBulkUpdate(BaseModel):
    """Payload replacing the whole menu."""

    items: list[MenuItemCreate]


class MenuItemRead(BaseModel):
    """Serialized dish as stored."""

    id: int
    category: str
    name: str
    price: Money
    created_at: UtcDatetime | None = None

    model_config = ConfigDict(from_attributes=True)
