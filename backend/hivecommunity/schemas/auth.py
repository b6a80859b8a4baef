from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_type: str
    session: Dict[str, Any]


class SessionStatusResponse(BaseModel):
    valid: bool
    user_type: str
    reason: Optional[str] = None
