from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RegisterRestaurantPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner_name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    phone: str = Field(min_length=1, max_length=40)
    password: str = Field(min_length=1, max_length=200)
    restaurant_name: str = Field(min_length=1, max_length=200)
    address: str = Field(min_length=1, max_length=500)
    location_lat: float
    location_lon: float
    location_place_id: str | None = None
    address_structured: dict[str, Any] | None = None


class RegisterDeliveryAgentPayload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(alias="lastName", min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=40)
    city: str = Field(min_length=1, max_length=120)

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()


class ProvisioningOutcomeOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    user_id: str | None = Field(default=None, alias="userId")
    error: str | None = None
