"""Settings API schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

OWNER_PASSWORD_KEY: str = "owner_password"
TAX_RATE_KEY: str = "tax_rate"
NUM_TABLES_KEY: str = "num_tables"
RESTAURANT_NAME_KEY: str = "restaurant_name"


class SettingUpdate(BaseModel):
    """Upsert of one setting; non-string values are stored as their string form."""

    key: str = Field(min_length=1, max_length=100)
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


class SettingRead(BaseModel):
    """Serialized setting row."""

    key: str
    value: str

    model_config = ConfigDict(from_attributes=True)
