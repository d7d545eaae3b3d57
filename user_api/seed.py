"""
Seed the configured store with the sample users shown in the dashboard demo.
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from user_api.config import get_settings
from user_api.db import UserRecord, UserStore
from user_api.dependencies import select_user_store
from user_api.errors import ConflictError
from user_api.validation import validate_user_payload

logger = logging.getLogger(__name__)

SAMPLE_USERS = (
    {"name": "John Doe", "email": "john@example.com", "age": 30},
    {"name": "Jane Smith", "email": "jane@example.com", "age": 25},
    {"name": "Mike Johnson", "email": "mike@example.com", "age": 35},
)


def seed_sample_users(store: UserStore, samples=SAMPLE_USERS) -> list[UserRecord]:
    """Create each sample user, skipping emails that already exist."""
    created: list[UserRecord] = []
    for sample in samples:
        data = validate_user_payload(sample["name"], sample["email"], sample.get("age"))
        try:
            created.append(store.create_user(data.name, data.email, data.age))
        except ConflictError:
            logger.info("Skipping %s, email already exists", data.email)
    return created


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed sample users")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    settings = get_settings()
    if args.database_url:
        settings = settings.model_copy(update={"database_url": args.database_url})
    selection = select_user_store(settings)
    if selection.is_fallback:
        logger.error(
            "No persistent database available (%s); nothing to seed",
            selection.fallback_reason,
        )
        return 1
    try:
        created = seed_sample_users(selection.store)
    finally:
        selection.store.close()
    logger.info("Seeded %d users", len(created))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
