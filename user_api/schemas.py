"""
Pydantic schemas for the user management API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict


class UserPayload(BaseModel):
    """
    Body of create/update requests. Fields are left untyped so that the
    handlers, not pydantic, decide what counts as missing or malformed.
    """

    model_config = ConfigDict(extra="ignore")

    name: Any = None
    email: Any = None
    age: Any = None


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    age: Optional[int] = None
    created_at: datetime


class UserListResponse(BaseModel):
    success: Literal[True] = True
    users: list[UserOut]
    count: int


class UserResponse(BaseModel):
    success: Literal[True] = True
    user: UserOut


class UserMutationResponse(BaseModel):
    success: Literal[True] = True
    message: str
    user: UserOut


class MessageResponse(BaseModel):
    success: Literal[True] = True
    message: str


class DatabaseStatus(BaseModel):
    connected: bool
    type: str


class HealthResponse(BaseModel):
    success: Literal[True] = True
    message: str
    status: Literal["ok", "degraded"]
    timestamp: str
    version: str
    backendType: str
    userCount: int
    database: DatabaseStatus


class ErrorResponse(BaseModel):
    error: str
