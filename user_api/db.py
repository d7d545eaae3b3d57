"""
User storage for Postgres and an in-memory fallback implementation.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    create_engine,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from user_api.errors import BackendError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserStore(Protocol):
    """Interface shared by both storage variants."""

    backend_type: str
    display_name: str

    def list_users(self) -> list["UserRecord"]:
        ...

    def get_user(self, user_id: int) -> "UserRecord":
        ...

    def create_user(
        self, name: str, email: str, age: Optional[int] = None
    ) -> "UserRecord":
        ...

    def update_user(
        self, user_id: int, name: str, email: str, age: Optional[int] = None
    ) -> "UserRecord":
        ...

    def delete_user(self, user_id: int) -> None:
        ...

    def count_users(self) -> int:
        ...

    def close(self) -> None:
        ...


@dataclass
class UserRecord:
    id: int
    name: str
    email: str
    age: Optional[int] = None
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "age": self.age,
            "created_at": self.created_at.isoformat(),
        }


def _sort_newest_first(records: list[UserRecord]) -> list[UserRecord]:
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)


class InMemoryUserStore:
    """
    Process-local store used when Postgres is unavailable, and in tests.

    Ids come from a counter that is never rewound, so deleted ids are not
    reused. Writes hold a lock so the email check and the insert happen
    together.
    """

    backend_type = "memory"
    display_name = "In-Memory"

    def __init__(self):
        self.users: Dict[int, UserRecord] = {}
        self.next_id = 1
        self._lock = threading.Lock()

    def _find_by_email(self, email: str) -> Optional[UserRecord]:
        email = email.lower()
        for user in self.users.values():
            if user.email.lower() == email:
                return user
        return None

    def list_users(self) -> list[UserRecord]:
        return [copy.copy(u) for u in _sort_newest_first(list(self.users.values()))]

    def get_user(self, user_id: int) -> UserRecord:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError()
        return copy.copy(user)

    def create_user(
        self, name: str, email: str, age: Optional[int] = None
    ) -> UserRecord:
        with self._lock:
            if self._find_by_email(email):
                raise ConflictError()
            record = UserRecord(id=self.next_id, name=name, email=email, age=age)
            self.next_id += 1
            self.users[record.id] = record
            return copy.copy(record)

    def update_user(
        self, user_id: int, name: str, email: str, age: Optional[int] = None
    ) -> UserRecord:
        with self._lock:
            user = self.users.get(user_id)
            if not user:
                raise NotFoundError()
            existing = self._find_by_email(email)
            if existing and existing.id != user_id:
                raise ConflictError()
            user.name = name
            user.email = email
            user.age = age
            return copy.copy(user)

    def delete_user(self, user_id: int) -> None:
        with self._lock:
            if self.users.pop(user_id, None) is None:
                raise NotFoundError()

    def count_users(self) -> int:
        return len(self.users)

    def reset(self) -> None:
        """Clear all stored data (useful in tests). The id counter is kept."""
        with self._lock:
            self.users.clear()

    def close(self) -> None:
        pass


def normalize_database_url(database_url: str) -> str:
    # Hosting providers often hand out the legacy "postgres://" scheme.
    if database_url.startswith("postgres://"):
        return "postgresql://" + database_url[len("postgres://"):]
    return database_url


class PostgresUserStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    Construction creates the users table if needed, which doubles as the
    connectivity probe: it raises if the database cannot be reached.
    """

    backend_type = "postgresql"
    display_name = "PostgreSQL"

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresUserStore")
        self.engine = create_engine(
            normalize_database_url(database_url),
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        created_at = row.created_at
        # SQLite drops tzinfo on read; stored values are always UTC.
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return UserRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            age=row.age,
            created_at=created_at,
        )

    def _email_taken(
        self, session: Session, email: str, exclude_id: Optional[int] = None
    ) -> bool:
        stmt = select(UserRow.id).where(func.lower(UserRow.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(UserRow.id != exclude_id)
        return session.execute(stmt.limit(1)).first() is not None

    def list_users(self) -> list[UserRecord]:
        try:
            with self.Session() as session:
                rows = session.execute(
                    select(UserRow).order_by(
                        UserRow.created_at.desc(), UserRow.id.desc()
                    )
                ).scalars()
                return [self._to_user_record(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.exception("Failed to list users")
            raise BackendError() from exc

    def get_user(self, user_id: int) -> UserRecord:
        try:
            with self.Session() as session:
                row = session.get(UserRow, user_id)
                if not row:
                    raise NotFoundError()
                return self._to_user_record(row)
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch user %s", user_id)
            raise BackendError() from exc

    def create_user(
        self, name: str, email: str, age: Optional[int] = None
    ) -> UserRecord:
        try:
            with self.Session() as session:
                if self._email_taken(session, email):
                    raise ConflictError()
                row = UserRow(name=name, email=email, age=age, created_at=_utcnow())
                session.add(row)
                session.commit()
                session.refresh(row)
                return self._to_user_record(row)
        except IntegrityError as exc:
            # A concurrent insert won the race; the UNIQUE constraint caught it.
            logger.warning("Unique violation creating user %s: %s", email, exc.orig)
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            logger.exception("Failed to create user %s", email)
            raise BackendError() from exc

    def update_user(
        self, user_id: int, name: str, email: str, age: Optional[int] = None
    ) -> UserRecord:
        try:
            with self.Session() as session:
                row = session.get(UserRow, user_id)
                if not row:
                    raise NotFoundError()
                if self._email_taken(session, email, exclude_id=user_id):
                    raise ConflictError()
                row.name = name
                row.email = email
                row.age = age
                session.commit()
                session.refresh(row)
                return self._to_user_record(row)
        except IntegrityError as exc:
            logger.warning(
                "Unique violation updating user %s: %s", user_id, exc.orig
            )
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            logger.exception("Failed to update user %s", user_id)
            raise BackendError() from exc

    def delete_user(self, user_id: int) -> None:
        try:
            with self.Session() as session:
                row = session.get(UserRow, user_id)
                if not row:
                    raise NotFoundError()
                session.delete(row)
                session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to delete user %s", user_id)
            raise BackendError() from exc

    def count_users(self) -> int:
        try:
            with self.Session() as session:
                return session.execute(
                    select(func.count()).select_from(UserRow)
                ).scalar_one()
        except SQLAlchemyError as exc:
            logger.exception("Failed to count users")
            raise BackendError() from exc

    def close(self) -> None:
        self.engine.dispose()


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"
    # Keeps SQLite from handing out a deleted id again; Postgres SERIAL never does.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    age = Column(Integer, nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
