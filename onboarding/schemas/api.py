"""Request and response bodies of the profile endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from onboarding.schemas.subscription import SubscriptionRecord


class PasswordUpdateRequest(BaseModel):
    # Presence is checked by the handler so missing fields map to 400, not 422.
    model_config = ConfigDict(populate_by_name=True)

    current_password: str | None = Field(None, alias="currentPassword")
    new_password: str | None = Field(None, alias="newPassword")


class SubscriptionActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str | None = None
    plan_id: str | None = Field(None, alias="planId")


class SuccessResponse(BaseModel):
    # Keeps a checkout payload from also validating as a plain success.
    model_config = ConfigDict(extra="forbid")

    success: Literal[True] = True
    message: str


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    checkout_url: str = Field(..., alias="checkoutUrl")
    message: str


class SubscriptionResponse(BaseModel):
    subscription: SubscriptionRecord
