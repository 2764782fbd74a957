"""Repository for the login attempt ledger."""

import sqlite3
from datetime import datetime
from typing import List, Optional

from accounts.domain.models.login_event import LoginEvent, LoginMethod


class SQLiteLoginEventRepository:
    """Append-only store of LoginEvent records. Rows are never updated or deleted."""

    def __init__(self, db_path: str):
        self.db_path = str(db_path)
        self._initialize_table()

    def _initialize_table(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS login_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    occurred_at TEXT NOT NULL,
                    successful INTEGER NOT NULL,
                    method TEXT NOT NULL,
                    failure_reason TEXT,
                    ip_address TEXT,
                    user_agent TEXT,
                    device TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_login_events_user ON login_events(user_id, occurred_at DESC)"
            )
            conn.commit()

    def append(
        self,
        user_id: str,
        occurred_at: datetime,
        successful: bool,
        method: LoginMethod,
        failure_reason: Optional[str],
        ip_address: Optional[str],
        user_agent: Optional[str],
        device: Optional[str],
    ) -> LoginEvent:
        """Insert a new login event."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO login_events (
                    user_id, occurred_at, successful, method,
                    failure_reason, ip_address, user_agent, device
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    occurred_at.isoformat(),
                    int(successful),
                    method.value,
                    failure_reason,
                    ip_address,
                    user_agent,
                    device,
                ),
            )
            conn.commit()
            event_id = cursor.lastrowid

        return LoginEvent(
            id=event_id,
            user_id=user_id,
            occurred_at=occurred_at,
            successful=successful,
            method=method,
            failure_reason=failure_reason,
            ip_address=ip_address,
            user_agent=user_agent,
            device=device,
        )

    def list_for_user(self, user_id: str, limit: int = 50) -> List[LoginEvent]:
        """List a user's login events, newest first."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                """
                SELECT * FROM login_events
                WHERE user_id = ?
                ORDER BY occurred_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, limit),
            )
            rows = cursor.fetchall()

        return [self._row_to_event(row) for row in rows]

    def _row_to_event(self, row: sqlite3.Row) -> LoginEvent:
        return LoginEvent(
            id=row["id"],
            user_id=row["user_id"],
            occurred_at=datetime.fromisoformat(row["occurred_at"]),
            successful=bool(row["successful"]),
            method=LoginMethod(row["method"]),
            failure_reason=row["failure_reason"],
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
            device=row["device"],
        )
