from fastapi import APIRouter, Depends

from hivecommunity.api.deps import CurrentActor, get_auth_service, get_current_actor
from hivecommunity.core.logging_config import logger
from hivecommunity.schemas.auth import LoginRequest, LoginResponse, SessionStatusResponse
from hivecommunity.services.auth_service import HIVE, AuthService, issue_token
from hivecommunity.services.session_manager import SessionDescriptor

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Log in with a generated hive or member credential"""
    actor = await auth_service.authenticate(credentials.email, credentials.password)
    descriptor = SessionDescriptor.from_actor(actor.user_type, actor.credential)

    return LoginResponse(
        access_token=issue_token(actor),
        user_type=actor.user_type,
        session=descriptor.model_dump(by_alias=True, exclude_none=True),
    )


@router.get("/session", response_model=SessionStatusResponse)
async def session_status(
    actor: CurrentActor = Depends(get_current_actor),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Re-check a stored session.

    Hive sessions require the hive credential to still be active. Member
    sessions are not re-checked.
    """
    if actor.user_type == HIVE:
        active = await auth_service.has_active_hive_credential(actor.actor_id, actor.email)
        if not active:
            logger.log_auth_event("session", False, email=actor.email, reason="credentials deactivated")
            return SessionStatusResponse(valid=False, user_type=actor.user_type, reason="Credentials deactivated")
    return SessionStatusResponse(valid=True, user_type=actor.user_type)
