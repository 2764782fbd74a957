"""Repository for User persistence."""

import sqlite3
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from accounts.domain.errors import DuplicateEmailError
from accounts.domain.models.profile import Profile
from accounts.domain.models.user import User, UserRole, UserStatus

_USER_COLUMNS = (
    "email",
    "password_hash",
    "role",
    "status",
    "verification_token",
    "reset_token",
    "reset_token_expires_at",
    "last_login_at",
    "accepts_terms",
    "marketing_opt_in",
    "session_version",
)

_PROFILE_COLUMNS = (
    "first_name",
    "last_name",
    "company",
    "job_title",
    "phone",
    "country",
    "picture_url",
)

_SELECT_USER = f"""
    SELECT u.*, {", ".join(f"p.{column}" for column in _PROFILE_COLUMNS)}
    FROM users u
    LEFT JOIN profiles p ON p.user_id = u.id
"""


class UserRepository:
    """Repository for managing User entities and their profiles in SQLite."""

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self._initialize_table()

    def _initialize_table(self) -> None:
        """Create users and profiles tables if they don't exist and migrate schema if needed."""
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    password_hash TEXT,
                    role TEXT NOT NULL DEFAULT 'user',
                    status TEXT NOT NULL DEFAULT 'unverified',
                    verification_token TEXT,
                    reset_token TEXT,
                    reset_token_expires_at TEXT,
                    last_login_at TEXT,
                    accepts_terms INTEGER NOT NULL DEFAULT 0,
                    marketing_opt_in INTEGER NOT NULL DEFAULT 0,
                    session_version INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS profiles (
                    user_id TEXT PRIMARY KEY,
                    first_name TEXT,
                    last_name TEXT,
                    company TEXT,
                    job_title TEXT,
                    phone TEXT,
                    country TEXT,
                    picture_url TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );
                """
            )

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_users_reset_token ON users(reset_token)"
            )
            conn.commit()

    def create(self, **fields: Any) -> User:
        """Build a new, not yet persisted user. Call :meth:`save` to store it."""
        profile = fields.pop("profile", None)
        if isinstance(profile, dict):
            profile = Profile(**profile)
        return User(id=str(uuid.uuid4()), profile=profile, persisted=False, **fields)

    def save(self, user: User) -> User:
        """Insert a new user with its profile, or update an existing one."""
        now = _utcnow()
        values = _user_values(user)
        profile_values = tuple(getattr(user.profile, column) for column in _PROFILE_COLUMNS)

        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("PRAGMA foreign_keys = ON")
                if not user.persisted:
                    conn.execute(
                        f"""
                        INSERT INTO users (id, {", ".join(_USER_COLUMNS)}, created_at, updated_at)
                        VALUES ({", ".join("?" * (len(_USER_COLUMNS) + 3))})
                        """,
                        (user.id, *values, now.isoformat(), now.isoformat()),
                    )
                    user.created_at = now
                else:
                    assignments = ", ".join(f"{column} = ?" for column in _USER_COLUMNS)
                    conn.execute(
                        f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?",
                        (*values, now.isoformat(), user.id),
                    )
                conn.execute(
                    f"""
                    INSERT INTO profiles (user_id, {", ".join(_PROFILE_COLUMNS)})
                    VALUES ({", ".join("?" * (len(_PROFILE_COLUMNS) + 1))})
                    ON CONFLICT(user_id) DO UPDATE SET
                    {", ".join(f"{column} = excluded.{column}" for column in _PROFILE_COLUMNS)}
                    """,
                    (user.id, *profile_values),
                )
                conn.commit()
        except sqlite3.IntegrityError as exc:
            if "users.email" in str(exc):
                raise DuplicateEmailError(user.email) from exc
            raise

        user.updated_at = now
        user.persisted = True
        return user

    def update_fields(self, user_id: str, **fields: Any) -> None:
        """Update a subset of user columns."""
        unknown = set(fields) - set(_USER_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")
        if not fields:
            return

        assignments = ", ".join(f"{column} = ?" for column in fields)
        params = [_to_db(value) for value in fields.values()]
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?",
                (*params, _utcnow().isoformat(), user_id),
            )
            conn.commit()

    def find_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        return self._fetch_one("WHERE u.id = ?", (user_id,))

    def find_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        return self._fetch_one("WHERE u.email = ?", (email,))

    def find_by_reset_token(self, user_id: str, token: str) -> Optional[User]:
        """Get user whose stored reset token equals the presented one."""
        return self._fetch_one("WHERE u.id = ? AND u.reset_token = ?", (user_id, token))

    def _fetch_one(self, where: str, params: tuple) -> Optional[User]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(f"{_SELECT_USER} {where}", params)
            row = cursor.fetchone()

        if not row:
            return None

        return self._row_to_user(row)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        """Convert database row to User entity."""
        profile = Profile(**{column: row[column] for column in _PROFILE_COLUMNS})
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=UserRole(row["role"]),
            status=UserStatus(row["status"]),
            verification_token=row["verification_token"],
            reset_token=row["reset_token"],
            reset_token_expires_at=_parse(row["reset_token_expires_at"]),
            last_login_at=_parse(row["last_login_at"]),
            accepts_terms=bool(row["accepts_terms"]),
            marketing_opt_in=bool(row["marketing_opt_in"]),
            session_version=row["session_version"],
            profile=profile,
            created_at=_parse(row["created_at"]),
            updated_at=_parse(row["updated_at"]),
            persisted=True,
        )


def _user_values(user: User) -> tuple:
    return tuple(_to_db(getattr(user, column)) for column in _USER_COLUMNS)


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


