"""
Client-side session persistence.

One session descriptor is kept under a single well-known key
(``SESSION_STORAGE_KEY``, default ``userSession``) in a pluggable storage
backend. Storing a session overwrites whatever was there; unreadable data is
treated exactly like no session at all.

Hive sessions are re-checked against an active hive credential on
``validate``. Member sessions are accepted without a lookup, so a member
whose credential was deactivated keeps a valid-looking session until it is
cleared.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import aiofiles
import aiofiles.os
import redis.asyncio as aioredis
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from hivecommunity.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

HiveCredentialCheck = Callable[[str, str], Awaitable[bool]]


# ==================== STORAGE BACKENDS ====================

class SessionStorage(ABC):
    """Key/value storage local to one client"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def close(self) -> None:
        return None


class MemoryStorage(SessionStorage):
    def __init__(self):
        self._values: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)


class FileStorage(SessionStorage):
    """One JSON file per key inside ``directory``"""

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not await aiofiles.os.path.exists(path):
            return None
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return await f.read()
        except OSError as e:
            logger.warning(f"Could not read session file {path}: {e}")
            return None

    async def set(self, key: str, value: str) -> None:
        await aiofiles.os.makedirs(self.directory, exist_ok=True)
        async with aiofiles.open(self._path(key), "w", encoding="utf-8") as f:
            await f.write(value)

    async def delete(self, key: str) -> None:
        try:
            await aiofiles.os.remove(self._path(key))
        except FileNotFoundError:
            pass


class RedisStorage(SessionStorage):
    def __init__(self, url: str, prefix: str = "hivecommunity:"):
        self.url = url
        self.prefix = prefix
        self._redis: Optional[aioredis.Redis] = None

    def _client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(self.url, encoding="utf-8", decode_responses=True)
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        return await self._client().get(f"{self.prefix}{key}")

    async def set(self, key: str, value: str) -> None:
        await self._client().set(f"{self.prefix}{key}", value)

    async def delete(self, key: str) -> None:
        await self._client().delete(f"{self.prefix}{key}")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.close()
            self._redis = None


def build_storage(config: Settings = default_settings) -> SessionStorage:
    """Storage backend named by ``SESSION_BACKEND``"""
    backend = config.SESSION_BACKEND.lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "redis":
        if not config.REDIS_URL:
            raise ValueError("SESSION_BACKEND=redis requires REDIS_URL")
        return RedisStorage(config.REDIS_URL)
    return FileStorage(config.SESSION_PATH)


# ==================== DESCRIPTOR ====================

class SessionDescriptor(BaseModel):
    """Stored session, serialized with camelCase keys"""

    model_config = ConfigDict(populate_by_name=True)

    user_type: str = Field(alias="userType")
    email: str
    hive_id: Optional[str] = Field(default=None, alias="hiveId")
    original_hive_id: Optional[str] = Field(default=None, alias="originalHiveId")
    hive_name: Optional[str] = Field(default=None, alias="hiveName")
    creator_name: Optional[str] = Field(default=None, alias="creatorName")
    member_id: Optional[str] = Field(default=None, alias="memberId")
    original_member_id: Optional[str] = Field(default=None, alias="originalMemberId")
    member_name: Optional[str] = Field(default=None, alias="memberName")
    login_time: str = Field(alias="loginTime")

    @classmethod
    def from_actor(cls, actor_type: str, record: Mapping[str, Any]) -> "SessionDescriptor":
        now = datetime.now(timezone.utc).isoformat()
        if actor_type == "hive":
            return cls(
                user_type="hive",
                hive_id=record.get("hiveId") or record.get("id"),
                original_hive_id=record.get("originalHiveId"),
                hive_name=record.get("hiveName"),
                creator_name=record.get("creatorName") or record.get("name"),
                email=record.get("email", ""),
                login_time=now,
            )
        return cls(
            user_type="member",
            member_id=record.get("memberId") or record.get("id"),
            original_member_id=record.get("originalMemberId"),
            member_name=record.get("memberName") or record.get("name"),
            hive_id=record.get("hiveId"),
            hive_name=record.get("hiveName"),
            email=record.get("email", ""),
            login_time=now,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class SessionValidation:
    valid: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class AuthStatus:
    is_authenticated: bool
    session: Optional[SessionDescriptor] = None
    reason: Optional[str] = None


# ==================== MANAGER ====================

class SessionManager:
    def __init__(
        self,
        storage: Optional[SessionStorage] = None,
        hive_credential_check: Optional[HiveCredentialCheck] = None,
        config: Settings = default_settings,
    ):
        self.storage = storage or build_storage(config)
        self.hive_credential_check = hive_credential_check
        self.key = config.SESSION_STORAGE_KEY
        self.token_key = f"{config.SESSION_STORAGE_KEY}Token"

    async def store(self, actor_type: str, actor_record: Mapping[str, Any]) -> SessionDescriptor:
        """Persist a new session, replacing any previous one"""
        descriptor = SessionDescriptor.from_actor(actor_type, actor_record)
        await self.storage.set(self.key, descriptor.to_json())
        logger.debug(f"Stored {actor_type} session for {descriptor.email}")
        return descriptor

    async def retrieve(self) -> Optional[SessionDescriptor]:
        """Stored session, or None when absent or unreadable"""
        try:
            raw = await self.storage.get(self.key)
        except Exception as e:
            logger.warning(f"Session storage read failed: {e}")
            return None
        if not raw:
            return None
        try:
            return SessionDescriptor.model_validate(json.loads(raw))
        except (ValueError, TypeError, PydanticValidationError) as e:
            logger.warning(f"Discarding unreadable session data: {e}")
            return None

    async def clear(self) -> None:
        await self.storage.delete(self.key)
        await self.storage.delete(self.token_key)

    async def store_token(self, token: str) -> None:
        """Bearer token kept beside the descriptor, not inside it"""
        await self.storage.set(self.token_key, token)

    async def retrieve_token(self) -> Optional[str]:
        try:
            return await self.storage.get(self.token_key)
        except Exception as e:
            logger.warning(f"Session storage read failed: {e}")
            return None

    async def validate(self, descriptor: SessionDescriptor) -> SessionValidation:
        if descriptor.user_type == "hive":
            if not descriptor.hive_id or not descriptor.email:
                return SessionValidation(False, "Incomplete hive session")
            if self.hive_credential_check is None:
                return SessionValidation(False, "No credential source to validate against")
            try:
                active = await self.hive_credential_check(descriptor.hive_id, descriptor.email)
            except Exception as e:
                logger.error(f"Hive session validation failed: {e}", exc_info=True)
                return SessionValidation(False, "Validation failed")
            if not active:
                return SessionValidation(False, "Credentials deactivated")
            return SessionValidation(True)

        if descriptor.user_type == "member":
            # Member credentials are not re-checked
            return SessionValidation(True)

        return SessionValidation(False, f"Unknown user type '{descriptor.user_type}'")

    async def check_auth_status(self) -> AuthStatus:
        """Retrieve and validate; an invalid session is cleared"""
        descriptor = await self.retrieve()
        if descriptor is None:
            return AuthStatus(is_authenticated=False, reason="No session")

        result = await self.validate(descriptor)
        if not result.valid:
            await self.clear()
            return AuthStatus(is_authenticated=False, reason=result.reason)
        return AuthStatus(is_authenticated=True, session=descriptor)

    async def close(self) -> None:
        await self.storage.close()
