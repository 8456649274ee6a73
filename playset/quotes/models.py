"""Quote request records and customer details."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator


QUOTE_STATUSES = ("pending", "reviewed", "quoted", "converted")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Shown when a field is missing or blank.
REQUIRED_MESSAGES = {
    "name": "Valid name is required",
    "email": "Email is required",
    "phone": "Phone number is required",
    "city": "City is required",
    "state": "State/Province is required",
    "postal_code": "Postal code is required",
}


class CustomerInfo(BaseModel):
    """Contact and delivery details captured on the quote form."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    phone: str
    city: str
    state: str
    postal_code: str = Field(alias="postalCode")
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def _name_long_enough(cls, v: str) -> str:
        if len(v.strip()) < 2:
            raise ValueError(REQUIRED_MESSAGES["name"])
        return v

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v: str) -> str:
        if not v:
            raise ValueError(REQUIRED_MESSAGES["email"])
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator("phone", "city", "state", "postal_code")
    @classmethod
    def _not_blank(cls, v: str, info: ValidationInfo) -> str:
        if not v.strip():
            raise ValueError(REQUIRED_MESSAGES[info.field_name])
        return v

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def _customer_message(err: dict) -> str:
    if err["type"] == "value_error":
        return str(err["ctx"]["error"])
    loc = str(err["loc"][0]) if err["loc"] else ""
    field_name = "postal_code" if loc == "postalCode" else loc
    return REQUIRED_MESSAGES.get(field_name, f"{loc}: {err['msg']}")


def parse_customer_info(data: dict) -> tuple[CustomerInfo | None, list[str]]:
    """Validate form input; returns (info, []) or (None, customer-facing errors)."""
    try:
        return CustomerInfo.model_validate(data), []
    except ValidationError as exc:
        return None, [_customer_message(err) for err in exc.errors()]


@dataclass
class QuoteRequest:
    id: str
    customer_info: CustomerInfo
    design_snapshot: dict[str, Any] = field(default_factory=dict)  # wire-format Design
    pricing: dict[str, Any] = field(default_factory=dict)          # wire-format breakdown
    user_id: str | None = None
    status: str = "pending"
    notes: str | None = None             # internal notes from the business
    created_at: str = ""                 # ISO 8601
    updated_at: str = ""                 # ISO 8601


def quote_to_dict(quote: QuoteRequest) -> dict:
    return {
        "id": quote.id,
        "userId": quote.user_id,
        "designSnapshot": quote.design_snapshot,
        "customerInfo": quote.customer_info.to_dict(),
        "pricing": quote.pricing,
        "status": quote.status,
        "notes": quote.notes,
        "createdAt": quote.created_at,
        "updatedAt": quote.updated_at,
    }


def quote_summary(quote: QuoteRequest) -> dict:
    """The slim shape returned right after submission."""
    return {"id": quote.id, "status": quote.status, "createdAt": quote.created_at}


def parse_quote(data: dict) -> QuoteRequest:
    return QuoteRequest(
        id=data["id"],
        customer_info=CustomerInfo.model_validate(data["customerInfo"]),
        design_snapshot=data.get("designSnapshot") or {},
        pricing=data.get("pricing") or {},
        user_id=data.get("userId"),
        status=data.get("status", "pending"),
        notes=data.get("notes"),
        created_at=data.get("createdAt", ""),
        updated_at=data.get("updatedAt", ""),
    )
