"""Account operations behind the profile endpoints.

Password changes re-authenticate with the current password before updating.
Subscription upgrades are mocked: they return a checkout URL instead of
talking to a billing provider.
"""

from __future__ import annotations

import logging
from typing import get_args
from urllib.parse import urlencode

from onboarding.adapters.auth.base import AbstractAuthProvider
from onboarding.adapters.stores.base import SubscriptionStore
from onboarding.core.errors import (
    AppError,
    AuthenticationAppError,
    UpstreamStoreError,
    ValidationAppError,
)
from onboarding.core.logging import hash_identifier
from onboarding.schemas.api import CheckoutResponse, SuccessResponse
from onboarding.schemas.profile import User
from onboarding.schemas.subscription import PlanTier, SubscriptionView, resolve_subscription

logger = logging.getLogger(__name__)

SUBSCRIPTION_ACTIONS = ("upgrade", "cancel")


class AccountService:
    def __init__(
        self,
        auth: AbstractAuthProvider,
        subscriptions: SubscriptionStore,
        *,
        checkout_base_url: str,
    ) -> None:
        self._auth = auth
        self._subscriptions = subscriptions
        self._checkout_base_url = checkout_base_url

    async def change_password(
        self, user: User, current_password: str | None, new_password: str | None
    ) -> SuccessResponse:
        """Verify ``current_password`` and replace it with ``new_password``.

        Raises:
            ValidationAppError: Missing fields or wrong current password.
            UpstreamStoreError: The provider failed to apply the update.
        """
        if not current_password or not new_password:
            raise ValidationAppError(
                code="missing_fields",
                message="Current and new passwords are required",
            )
        if not user.email:
            raise ValidationAppError(
                code="password_login_unavailable",
                message="Account has no email address to verify the password against",
            )

        try:
            verified = await self._auth.sign_in_with_password(
                user.email, current_password, persist=False
            )
        except AuthenticationAppError as exc:
            raise ValidationAppError(
                code="incorrect_password",
                message="Current password is incorrect",
            ) from exc

        try:
            await self._auth.update_user(verified.access_token, password=new_password)
        except ValidationAppError:
            raise
        except AppError as exc:
            logger.error(
                "account.password_update_failed",
                extra={"user_hash": hash_identifier(user.id), "error_code": exc.code},
            )
            raise UpstreamStoreError(
                code="password_update_failed",
                message="Failed to update password",
            ) from exc

        logger.info("account.password_updated", extra={"user_hash": hash_identifier(user.id)})
        return SuccessResponse(message="Password updated successfully")

    async def get_subscription(self, user: User) -> SubscriptionView:
        record = await self._subscriptions.get_by_user(user.id)
        return resolve_subscription(record, user.id)

    async def apply_subscription_action(
        self, user: User, action: str | None, plan_id: str | None
    ) -> CheckoutResponse | SuccessResponse:
        if action == "upgrade":
            return self._checkout(plan_id)
        if action == "cancel":
            await self._subscriptions.mark_cancel_at_period_end(user.id)
            logger.info(
                "account.subscription_cancel_scheduled",
                extra={"user_hash": hash_identifier(user.id)},
            )
            return SuccessResponse(
                message="Subscription will be canceled at the end of the billing period"
            )
        raise ValidationAppError(
            code="invalid_action",
            message="Invalid action",
            details={"field": "action", "hint": f"Expected one of: {', '.join(SUBSCRIPTION_ACTIONS)}"},
        )

    def _checkout(self, plan_id: str | None) -> CheckoutResponse:
        if plan_id is not None and plan_id not in get_args(PlanTier):
            raise ValidationAppError(
                code="invalid_plan",
                message=f"Unknown plan: {plan_id}",
                details={"field": "planId"},
            )
        url = self._checkout_base_url
        if plan_id:
            url = f"{url}?{urlencode({'plan': plan_id})}"
        return CheckoutResponse(checkout_url=url, message="Stripe integration coming soon!")
