import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional

from libraryapp.database import get_db_connection, initialize_database

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    id: int
    login: str
    user_type: str
    api_key: Optional[str] = None


class UserDirectory:
    """Read-only lookup of seeded users, used to turn an API key into a user id."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file
        initialize_database(db_file)

    def _connect(self) -> sqlite3.Connection:
        return get_db_connection(self.db_file)

    def find_by_api_key(self, api_key: Optional[str]) -> Optional[User]:
        if not api_key or not api_key.strip():
            return None
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT id, login, user_type, api_key FROM users WHERE user_type = 'api' AND api_key = ?",
                (api_key,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            logger.warning("Failed API key validation attempt")
            return None
        return User(**dict(row))

    def get(self, user_id: int) -> Optional[User]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT id, login, user_type, api_key FROM users WHERE id = ?", (user_id,)).fetchone()
            return User(**dict(row)) if row else None
        finally:
            conn.close()
