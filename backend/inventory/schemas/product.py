"""Product request/response schemas and field validation"""
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from inventory.core.errors import ValidationError

# Keys the client may send but never get written through create/update
READ_ONLY_FIELDS = ("id", "code", "image_ref", "imageRef", "created_at", "createdAt", "updated_at", "updatedAt")

# Fits a 32-bit INTEGER column on every backend
MAX_QUANTITY = 2_147_483_647


class ProductCreate(BaseModel):
    """Fields required to create a product. Form strings are coerced."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0, le=MAX_QUANTITY)
    price: float = Field(..., ge=0, allow_inf_nan=False)


class ProductUpdate(BaseModel):
    """Partial update; only the fields that were sent are set."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    quantity: Optional[int] = Field(None, ge=0, le=MAX_QUANTITY)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    code: str
    name: str
    description: str
    quantity: int
    price: float
    image_ref: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        # SQLite hands timestamps back without tzinfo; they are stored as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class MessageResponse(BaseModel):
    message: str


def _describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        parts.append(f"{field}: {error['msg']}" if field else error["msg"])
    return "; ".join(parts)


def _writable(raw: Mapping[str, Any]) -> dict:
    return {
        key: value
        for key, value in raw.items()
        if value is not None and key not in READ_ONLY_FIELDS
    }


def validate_new_product(raw: Mapping[str, Any]) -> ProductCreate:
    """Check the fields of a product about to be created.

    Raises ValidationError naming every missing or malformed field.
    """
    try:
        return ProductCreate.model_validate(_writable(raw))
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


def validate_product_changes(raw: Mapping[str, Any]) -> ProductUpdate:
    """Check the subset of product fields present in an update."""
    try:
        return ProductUpdate.model_validate(_writable(raw))
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc
