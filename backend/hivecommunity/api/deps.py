"""
Request dependencies: store handle, services and the authenticated actor.

The document store is opened once in the application lifespan and kept on
``app.state.store``; every service is a thin object constructed per request
around that handle.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hivecommunity.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ServiceError,
    SessionExpiredError,
)
from hivecommunity.core.logging_config import set_actor_id
from hivecommunity.core.security import decode_token, verify_admin_token
from hivecommunity.services.application_lifecycle import ApplicationLifecycle
from hivecommunity.services.auth_service import HIVE, MEMBER, AuthService
from hivecommunity.services.document_store import Collections, Document, DocumentStore
from hivecommunity.services.event_service import EventService
from hivecommunity.services.hive_service import HiveService
from hivecommunity.services.volunteer_service import VolunteerService

security = HTTPBearer(auto_error=False)

ADMIN_ACTOR_ID = "admin"


def get_store(request: Request) -> DocumentStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise ServiceError("Document store is not initialized", operation="get_store")
    return store


def get_lifecycle(store: DocumentStore = Depends(get_store)) -> ApplicationLifecycle:
    return ApplicationLifecycle(store)


def get_auth_service(store: DocumentStore = Depends(get_store)) -> AuthService:
    return AuthService(store)


def get_hive_service(store: DocumentStore = Depends(get_store)) -> HiveService:
    return HiveService(store)


def get_event_service(store: DocumentStore = Depends(get_store)) -> EventService:
    return EventService(store)


def get_volunteer_service(
    store: DocumentStore = Depends(get_store),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
) -> VolunteerService:
    return VolunteerService(store, lifecycle)


@dataclass(frozen=True)
class CurrentActor:
    user_type: str
    actor_id: str
    email: str
    hive_id: Optional[str] = None
    hive_name: Optional[str] = None
    name: Optional[str] = None


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentActor:
    """Actor from the bearer token issued at login"""
    if credentials is None:
        raise AuthenticationError("Not authenticated", code="NOT_AUTHENTICATED")

    payload = decode_token(credentials.credentials)
    actor_id = payload.get("sub")
    user_type = payload.get("user_type")
    if not actor_id or user_type not in (HIVE, MEMBER):
        raise AuthenticationError("Invalid token payload", code="INVALID_TOKEN")

    set_actor_id(f"{user_type}:{actor_id}")
    return CurrentActor(
        user_type=user_type,
        actor_id=actor_id,
        email=payload.get("email", ""),
        hive_id=payload.get("hive_id"),
        hive_name=payload.get("hive_name"),
        name=payload.get("name"),
    )


async def get_current_hive(
    actor: CurrentActor = Depends(get_current_actor),
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentActor:
    """Hive leader whose credential is still active"""
    if actor.user_type != HIVE:
        raise AuthorizationError("Hive leader access required")
    if not await auth_service.has_active_hive_credential(actor.actor_id, actor.email):
        raise SessionExpiredError()
    return actor


async def get_current_member(actor: CurrentActor = Depends(get_current_actor)) -> CurrentActor:
    if actor.user_type != MEMBER:
        raise AuthorizationError("Member access required")
    return actor


async def get_current_member_record(
    actor: CurrentActor = Depends(get_current_member),
    store: DocumentStore = Depends(get_store),
) -> Document:
    """The member's approved record"""
    member = await store.get(Collections.MEMBERS_APPROVED, actor.actor_id)
    if member is None:
        raise NotFoundError("Member", actor.actor_id)
    return member


async def require_admin(x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token")) -> str:
    if not verify_admin_token(x_admin_token):
        raise AuthorizationError("Admin token required")
    set_actor_id(ADMIN_ACTOR_ID)
    return ADMIN_ACTOR_ID
