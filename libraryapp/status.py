import logging
from typing import Optional

from libraryapp.database import get_db_connection, initialize_database

logger = logging.getLogger(__name__)


class StatusStore:
    """Read access to the service status rows."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file
        initialize_database(db_file)

    def first_status(self) -> str:
        """Value of the status row with the lowest id, or '' when there is none."""
        conn = get_db_connection(self.db_file)
        try:
            row = conn.execute("SELECT value FROM statuses ORDER BY id LIMIT 1").fetchone()
        except Exception:
            logger.exception("An error occurred while retrieving the first status")
            raise
        finally:
            conn.close()
        return row["value"] if row else ""
