from typing import Annotated

from fastapi import APIRouter, Depends

from onboarding.adapters.factory import Backend
from onboarding.core.auth import CurrentAuth, get_backend
from onboarding.core.config import settings
from onboarding.core.rate_limit import enforce_rate_limit
from onboarding.schemas.api import (
    CheckoutResponse,
    PasswordUpdateRequest,
    SubscriptionActionRequest,
    SubscriptionResponse,
    SuccessResponse,
)
from onboarding.services.account_service import AccountService

router = APIRouter(prefix="/api/profile", tags=["Profile"])

_ERROR_RESPONSES = {
    400: {"description": "Missing or invalid field"},
    401: {"description": "No valid session"},
    500: {"description": "Backend store failure"},
}
_THROTTLED = {429: {"description": "Rate limit exceeded"}}


def get_account_service(backend: Annotated[Backend, Depends(get_backend)]) -> AccountService:
    return AccountService(
        backend.auth,
        backend.subscriptions,
        checkout_base_url=settings.app.checkout_base_url,
    )


AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]


@router.post(
    "/password",
    response_model=SuccessResponse,
    responses={**_ERROR_RESPONSES, **_THROTTLED},
    dependencies=[Depends(enforce_rate_limit)],
)
async def update_password(
    body: PasswordUpdateRequest,
    auth: CurrentAuth,
    service: AccountServiceDep,
) -> SuccessResponse:
    """Change the caller's password after re-checking the current one."""

    return await service.change_password(auth.user, body.current_password, body.new_password)


@router.get(
    "/subscription",
    response_model=SubscriptionResponse,
    responses={401: _ERROR_RESPONSES[401], 500: _ERROR_RESPONSES[500]},
)
async def get_subscription(auth: CurrentAuth, service: AccountServiceDep) -> SubscriptionResponse:
    """Return the caller's subscription; callers without one are on the free tier."""

    view = await service.get_subscription(auth.user)
    return SubscriptionResponse(subscription=view.to_record())


@router.post(
    "/subscription",
    response_model=CheckoutResponse | SuccessResponse,
    responses={**_ERROR_RESPONSES, **_THROTTLED},
    dependencies=[Depends(enforce_rate_limit)],
)
async def update_subscription(
    body: SubscriptionActionRequest,
    auth: CurrentAuth,
    service: AccountServiceDep,
) -> CheckoutResponse | SuccessResponse:
    """Start a (mock) upgrade checkout or schedule cancellation."""

    return await service.apply_subscription_action(auth.user, body.action, body.plan_id)
