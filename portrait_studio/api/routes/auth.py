"""
User sync on login: verify the Identity Provider token, then get or create the account.
Token comes from the JSON body ({"token": ...}) or the Authorization header.
"""
import logging

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from portrait_studio.api.deps import get_runtime_config
from portrait_studio.db.session import get_db
from portrait_studio.schemas.users import UserOut, VerifyIn, VerifyOut
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.services.auth.jwt import bearer_token, verify_token
from portrait_studio.services.events.service import EventService
from portrait_studio.services.users.service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/verify", response_model=VerifyOut)
def verify(
    request: Request,
    body: VerifyIn | None = Body(default=None),
    db: Session = Depends(get_db),
    config: RuntimeConfig = Depends(get_runtime_config),
) -> VerifyOut:
    token = (body.token if body else None) or bearer_token(request)
    claims = verify_token(token or "")
    user, created = UserService(db).get_or_create(claims, free_credits=config.free_tier_credits)
    EventService(db).log("user_login", user.id, {"new_user": created})
    return VerifyOut(
        user=UserOut(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=user.role,
            credits=user.credits,
            subscription_status=user.subscription_status,
            subscription_expires_at=user.subscription_expires_at,
            generation_count=user.generation_count,
            total_spent=user.total_spent,
            created_at=user.created_at,
        )
    )
