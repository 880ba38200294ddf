"""Staff API schemas."""

from pydantic import BaseModel, ConfigDict, Field

from restopos.schemas.common import UtcDatetime


class StaffCreate(BaseModel):
    """Payload for adding a staff member."""

    name: str = Field(min_length=1, max_length=128)


class StaffRead(BaseModel):
    """Serialized staff member."""

    id: int
    name: str
    email: str | None = None
    role: str = "staff"
    created_at: UtcDatetime | None = None

    model_config = ConfigDict(from_attributes=True)


class StaffPermissionsUpdate(BaseModel):
    """Partial update of a staff member's visibility rules."""

    can_view_all_orders: bool | None = None
    allowed_staff_ids: list[int] | None = None


class StaffPermissionsRead(BaseModel):
    """Serialized visibility rules."""

    staff_id: int
    can_view_all_orders: bool = False
    allowed_staff_ids: list[int] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
