"""SQLite-based upload tracker.

Records every upload a session receives and how far it got through the
pipeline (parsed, cleaned, downloaded), with the error message when a stage
failed. Lets operators see which uploads users struggled with.
"""

import sqlite3
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from reflow.table import UploadRecord

__all__ = ['UploadTracker', 'STAGES']

logger = logging.getLogger(__name__)

STAGES = ('parsed', 'cleaned', 'downloaded')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class UploadTracker:
    """Tracks uploads and their progress through pipeline stages.

    **Stages:**

    1. **Parsed**: the upload parsed into a table
    2. **Cleaned**: cleaning options applied
    3. **Downloaded**: the cleaned file was handed to the download sink

    **Status values:** ``pending`` (registered), ``processing`` (some stage
    done), ``completed`` (downloaded), ``failed`` (a stage raised).

    **Thread Safety:**

    All methods are thread-safe via internal locking. Upload processor
    threads of different sessions share one tracker.

    **Typical Usage:**

        tracker = UploadTracker(db_path)
        tracker.register_upload("u1", "session-1", record)
        tracker.mark_stage_complete("u1", "parsed", num_rows=3, num_columns=4)
        tracker.get_statistics(session_id="session-1")
        tracker.close()
    """

    def __init__(self, db_path: Path | str):
        """Initialize tracker.

        Parameters
        ----------
        db_path : Path or str
            Path to SQLite database file. Created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = None
        self._lock = threading.Lock()

        self._init_database()
        logger.info(f"Upload tracker initialized: {self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_database(self):
        """Create database schema if it doesn't exist."""
        conn = self._get_connection()

        with self._lock:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS uploads (
                    upload_id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    size_bytes INTEGER,
                    mime_type TEXT,
                    staged_path TEXT,

                    received_at TEXT,
                    parsed_at TEXT,
                    cleaned_at TEXT,
                    downloaded_at TEXT,

                    status TEXT DEFAULT 'pending',
                    error_message TEXT,

                    num_rows INTEGER,
                    num_columns INTEGER,

                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_session_id ON uploads(session_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_status ON uploads(status)")

            conn.commit()

    def register_upload(self, upload_id: str, session_id: str, record: UploadRecord) -> bool:
        """Register a newly received upload.

        Returns
        -------
        bool
            True if newly registered, False if ``upload_id`` already exists.
        """
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute("SELECT upload_id FROM uploads WHERE upload_id = ?", (upload_id,))
            if cursor.fetchone():
                return False

            conn.execute("""
                INSERT INTO uploads
                (upload_id, session_id, name, size_bytes, mime_type, staged_path, received_at, status)
                VALUES (?, ?, ?, ?, ?, ?, ?, 'pending')
            """, (
                upload_id,
                session_id,
                record.name,
                record.size_bytes,
                record.mime_type,
                str(record.content_path),
                _now(),
            ))
            conn.commit()

            logger.debug(f"Registered upload: {upload_id} ({record.name})")
            return True

    def set_staged_path(self, upload_id: str, path: Path | str):
        """Record where the session staged its copy of the upload."""
        conn = self._get_connection()
        with self._lock:
            conn.execute(
                "UPDATE uploads SET staged_path = ?, updated_at = ? WHERE upload_id = ?",
                (str(path), _now(), upload_id),
            )
            conn.commit()

    def mark_stage_complete(self, upload_id: str, stage: str,
                            num_rows: Optional[int] = None,
                            num_columns: Optional[int] = None,
                            error: Optional[str] = None):
        """Mark a pipeline stage as complete or failed for an upload.

        Parameters
        ----------
        upload_id : str
            Upload identifier (registered via register_upload).
        stage : str
            One of 'parsed', 'cleaned', 'downloaded'.
        num_rows, num_columns : int, optional
            Table shape after this stage.
        error : str, optional
            Error message if the stage failed; sets status to 'failed'.

        Raises
        ------
        ValueError
            If stage is not a valid pipeline stage.
        """
        if stage not in STAGES:
            raise ValueError(f"Invalid stage: {stage}. Must be one of {list(STAGES)}")

        if error:
            new_status = 'failed'
        elif stage == 'downloaded':
            new_status = 'completed'
        else:
            new_status = 'processing'

        timestamp_col = f"{stage}_at"
        assignments = [f"{timestamp_col} = ?", "status = ?", "error_message = ?", "updated_at = ?"]
        params = [None if error else _now(), new_status, error, _now()]
        if num_rows is not None:
            assignments.append("num_rows = ?")
            params.append(num_rows)
        if num_columns is not None:
            assignments.append("num_columns = ?")
            params.append(num_columns)
        params.append(upload_id)

        conn = self._get_connection()
        with self._lock:
            conn.execute(
                f"UPDATE uploads SET {', '.join(assignments)} WHERE upload_id = ?",
                params,
            )
            conn.commit()

        logger.debug(f"Marked {stage} {'failed' if error else 'complete'}: {upload_id}")

    def get_upload_status(self, upload_id: str) -> Optional[Dict]:
        """Full record for one upload, or None if unknown."""
        conn = self._get_connection()

        with self._lock:
            row = conn.execute("SELECT * FROM uploads WHERE upload_id = ?", (upload_id,)).fetchone()
            return dict(row) if row else None

    def get_uploads(self, session_id: Optional[str] = None,
                    status: Optional[str] = None) -> List[Dict]:
        """Uploads in arrival order, optionally filtered by session and status."""
        query = "SELECT * FROM uploads WHERE 1 = 1"
        params = []
        if session_id:
            query += " AND session_id = ?"
            params.append(session_id)
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY received_at, rowid"

        conn = self._get_connection()
        with self._lock:
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    def get_statistics(self, session_id: Optional[str] = None) -> Dict:
        """Summary counts: total, parsed, cleaned, downloaded, per-status counts."""
        where_clause = "WHERE session_id = ?" if session_id else ""
        params = (session_id,) if session_id else ()

        conn = self._get_connection()
        with self._lock:
            row = conn.execute(f"""
                SELECT
                    COUNT(*) as total,
                    COUNT(parsed_at) as parsed,
                    COUNT(cleaned_at) as cleaned,
                    COUNT(downloaded_at) as downloaded,
                    SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) as completed,
                    SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) as failed,
                    SUM(CASE WHEN status = 'processing' THEN 1 ELSE 0 END) as processing,
                    SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) as pending
                FROM uploads
                {where_clause}
            """, params).fetchone()
            stats = dict(row) if row else {}

        # SUM over zero rows is NULL
        return {k: (v or 0) for k, v in stats.items()}

    def reset_failed(self, session_id: Optional[str] = None):
        """Reset failed uploads to pending and clear their error message."""
        conn = self._get_connection()

        with self._lock:
            if session_id:
                conn.execute("""
                    UPDATE uploads
                    SET status = 'pending', error_message = NULL, updated_at = ?
                    WHERE status = 'failed' AND session_id = ?
                """, (_now(), session_id))
            else:
                conn.execute("""
                    UPDATE uploads
                    SET status = 'pending', error_message = NULL, updated_at = ?
                    WHERE status = 'failed'
                """, (_now(),))
            conn.commit()

        logger.info("Reset failed uploads to pending")

    def close(self):
        """Close database connection. Safe to call multiple times."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
