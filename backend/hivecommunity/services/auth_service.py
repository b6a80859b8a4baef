"""
Authentication against generated hive/member credentials.

Login identifiers live in two credential collections. A login attempt checks
hive credentials first, then member credentials; only active credentials
whose stored bcrypt hash matches are accepted.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from hivecommunity.core.exceptions import AuthenticationError
from hivecommunity.core.logging_config import logger as auth_logger
from hivecommunity.core.security import create_access_token, verify_password
from hivecommunity.services.document_store import Collections, Document, DocumentStore

logger = logging.getLogger(__name__)

HIVE = "hive"
MEMBER = "member"


@dataclass(frozen=True)
class AuthenticatedActor:
    user_type: str
    credential: Document

    @property
    def actor_id(self) -> str:
        key = "hiveId" if self.user_type == HIVE else "memberId"
        return self.credential.get(key) or ""

    @property
    def email(self) -> str:
        return self.credential.get("email", "")

    @property
    def hive_id(self) -> Optional[str]:
        return self.credential.get("hiveId")

    @property
    def hive_name(self) -> Optional[str]:
        return self.credential.get("hiveName")

    @property
    def display_name(self) -> Optional[str]:
        if self.user_type == HIVE:
            return self.credential.get("creatorName")
        return self.credential.get("memberName")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AuthService:
    """Credential lookups for hive leaders and members"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def _find_active(self, collection: str, email: str, password: str) -> Optional[Document]:
        candidates = await self.store.query(collection, filters={"email": email, "isActive": True})
        for credential in candidates:
            if verify_password(password, credential.get("passwordHash", "")):
                return credential
        return None

    async def authenticate_hive(self, email: str, password: str) -> Optional[AuthenticatedActor]:
        credential = await self._find_active(Collections.HIVE_CREDENTIALS, normalize_email(email), password)
        return AuthenticatedActor(HIVE, credential) if credential else None

    async def authenticate_member(self, email: str, password: str) -> Optional[AuthenticatedActor]:
        credential = await self._find_active(Collections.MEMBER_CREDENTIALS, normalize_email(email), password)
        return AuthenticatedActor(MEMBER, credential) if credential else None

    async def authenticate(self, email: str, password: str) -> AuthenticatedActor:
        """Try hive credentials, then member credentials.

        Raises:
            AuthenticationError: no active credential matches
        """
        email = normalize_email(email)
        if not email or not password:
            auth_logger.log_auth_event("login", False, email=email, reason="missing email or password")
            raise AuthenticationError()

        actor = await self.authenticate_hive(email, password)
        if actor is None:
            actor = await self.authenticate_member(email, password)

        if actor is None:
            auth_logger.log_auth_event("login", False, email=email, reason="no matching active credential")
            raise AuthenticationError()

        auth_logger.log_auth_event("login", True, email=email, user_type=actor.user_type)
        return actor

    async def has_active_hive_credential(self, hive_id: str, email: str) -> bool:
        """True while the hive's credential exists and is active"""
        matches = await self.store.query(
            Collections.HIVE_CREDENTIALS,
            filters={"hiveId": hive_id, "email": normalize_email(email), "isActive": True},
            limit=1,
        )
        return bool(matches)

    async def deactivate(self, user_type: str, email: str) -> int:
        """Deactivate every credential for ``email``; returns how many changed"""
        collection = Collections.HIVE_CREDENTIALS if user_type == HIVE else Collections.MEMBER_CREDENTIALS
        changed = 0
        async with self.store.transaction() as tx:
            for credential in await tx.query(collection, filters={"email": normalize_email(email)}):
                if credential.get("isActive"):
                    await tx.update(collection, credential["id"], {"isActive": False})
                    changed += 1
        if changed:
            logger.info(f"Deactivated {changed} {user_type} credential(s) for {email}")
        return changed


def issue_token(actor: AuthenticatedActor) -> str:
    """Bearer token carrying the actor's identity and hive scope"""
    claims: Dict[str, Any] = {
        "sub": actor.actor_id,
        "user_type": actor.user_type,
        "email": actor.email,
        "hive_id": actor.hive_id,
        "hive_name": actor.hive_name,
        "name": actor.display_name,
    }
    return create_access_token(claims)
