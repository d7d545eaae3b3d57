"""
HTTP routes for the user management API.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, Request

from user_api.config import Settings
from user_api.db import UserRecord, UserStore
from user_api.dependencies import get_app_settings, get_user_store
from user_api.errors import BackendError, RouteNotFoundError
from user_api.health import build_health_report
from user_api.schemas import (
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    UserListResponse,
    UserMutationResponse,
    UserOut,
    UserPayload,
    UserResponse,
)
from user_api.validation import parse_user_id, validate_user_payload

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@contextmanager
def _backend_failure(message: str) -> Iterator[None]:
    """Replace a store's BackendError with this operation's public message."""
    try:
        yield
    except BackendError as exc:
        raise BackendError(message) from exc


def _user_out(record: UserRecord) -> UserOut:
    return UserOut(**asdict(record))


@router.get("/users", response_model=UserListResponse, responses=_ERROR_RESPONSES)
@router.get(
    "/users/",
    response_model=UserListResponse,
    responses=_ERROR_RESPONSES,
    include_in_schema=False,
)
def list_users(store: UserStore = Depends(get_user_store)):
    with _backend_failure("Failed to fetch users"):
        users = store.list_users()
    return UserListResponse(users=[_user_out(u) for u in users], count=len(users))


@router.get(
    "/users/{user_id}", response_model=UserResponse, responses=_ERROR_RESPONSES
)
@router.get(
    "/users/{user_id}/",
    response_model=UserResponse,
    responses=_ERROR_RESPONSES,
    include_in_schema=False,
)
def get_user(user_id: str, store: UserStore = Depends(get_user_store)):
    with _backend_failure("Failed to fetch user"):
        user = store.get_user(parse_user_id(user_id))
    return UserResponse(user=_user_out(user))


@router.post(
    "/users",
    response_model=UserMutationResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
)
@router.post(
    "/users/",
    response_model=UserMutationResponse,
    status_code=201,
    responses=_ERROR_RESPONSES,
    include_in_schema=False,
)
def create_user(
    payload: Optional[UserPayload] = None,
    store: UserStore = Depends(get_user_store),
):
    payload = payload or UserPayload()
    data = validate_user_payload(payload.name, payload.email, payload.age)
    with _backend_failure("Failed to create user"):
        user = store.create_user(data.name, data.email, data.age)
    logger.info("Created user %s (%s)", user.id, user.email)
    return UserMutationResponse(
        message="User created successfully", user=_user_out(user)
    )


@router.put(
    "/users/{user_id}",
    response_model=UserMutationResponse,
    responses=_ERROR_RESPONSES,
)
@router.put(
    "/users/{user_id}/",
    response_model=UserMutationResponse,
    responses=_ERROR_RESPONSES,
    include_in_schema=False,
)
def update_user(
    user_id: str,
    payload: Optional[UserPayload] = None,
    store: UserStore = Depends(get_user_store),
):
    payload = payload or UserPayload()
    data = validate_user_payload(payload.name, payload.email, payload.age)
    with _backend_failure("Failed to update user"):
        user = store.update_user(
            parse_user_id(user_id), data.name, data.email, data.age
        )
    logger.info("Updated user %s", user.id)
    return UserMutationResponse(
        message="User updated successfully", user=_user_out(user)
    )


@router.delete(
    "/users/{user_id}", response_model=MessageResponse, responses=_ERROR_RESPONSES
)
@router.delete(
    "/users/{user_id}/",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    include_in_schema=False,
)
def delete_user(user_id: str, store: UserStore = Depends(get_user_store)):
    with _backend_failure("Failed to delete user"):
        store.delete_user(parse_user_id(user_id))
    logger.info("Deleted user %s", user_id)
    return MessageResponse(message="User deleted successfully")


@router.get("/health", response_model=HealthResponse)
@router.get("/health/", response_model=HealthResponse, include_in_schema=False)
def health(
    store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_app_settings),
):
    return build_health_report(store, settings.app_version)


@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False,
)
def api_not_found(path: str, request: Request):
    logger.debug("No API route for %s /%s", request.method, path)
    raise RouteNotFoundError()
