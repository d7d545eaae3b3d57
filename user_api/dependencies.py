"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from user_api.config import Settings
from user_api.db import InMemoryUserStore, PostgresUserStore, UserStore

logger = logging.getLogger(__name__)


@dataclass
class StoreSelection:
    """Outcome of the one-time backend choice made at startup."""

    store: UserStore
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None


def select_user_store(settings: Settings) -> StoreSelection:
    """
    Build the persistent store, or the in-memory one if it is disabled,
    unconfigured, or fails to initialize. There is no later retry.
    """
    if settings.use_in_memory_backends:
        logger.info("In-memory backends requested, using in-memory user store")
        return StoreSelection(InMemoryUserStore())
    if not settings.database_url:
        logger.warning("DATABASE_URL not set, using in-memory user store")
        return StoreSelection(InMemoryUserStore(), "DATABASE_URL not set")

    try:
        store = PostgresUserStore(settings.database_url)
    except (SQLAlchemyError, ImportError) as exc:
        # ImportError covers a missing database driver.
        logger.exception(
            "Database initialization failed, falling back to in-memory user store"
        )
        return StoreSelection(InMemoryUserStore(), type(exc).__name__)

    logger.info("Using %s user store", store.display_name)
    return StoreSelection(store)


def get_user_store(request: Request) -> UserStore:
    """Return the store chosen at startup for this app instance."""
    return request.app.state.store_selection.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
