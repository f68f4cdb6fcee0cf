"""SQLite implementation of the video metadata repository."""

import sqlite3
import threading
from datetime import timedelta

from videocatalog.config import settings
from videocatalog.models import Genre, Page, PageRequest, VideoMetadata
from videocatalog.storage.filters import SQL_LOWER_FUNCTION, SearchFilter
from videocatalog.storage.repository import (
    ConstraintViolationError,
    InvalidSortError,
    VideoMetadataRepository,
)


def _unicode_lower(value: str | None) -> str | None:
    return value.lower() if value is not None else None


class SQLiteVideoMetadataRepository(VideoMetadataRepository):
    """SQLite-backed metadata storage.

    Implements VideoMetadataRepository using stdlib sqlite3. Soft-deleted
    rows keep ``deleted = 1`` in the base table; every read goes through
    the ``active_video_metadata`` view so deleted rows never leak into a
    query. Running time is stored as seconds.
    """

    _SCHEMA = (
        """
        CREATE TABLE IF NOT EXISTS video_metadata (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            title           TEXT NOT NULL,
            synopsis        TEXT NOT NULL DEFAULT '',
            director        TEXT NOT NULL DEFAULT '',
            cast_members    TEXT,
            year_of_release INTEGER NOT NULL CHECK (year_of_release > 0),
            genre           TEXT,
            running_time    REAL,
            video_location  TEXT NOT NULL,
            impressions     INTEGER NOT NULL DEFAULT 0 CHECK (impressions >= 0),
            views           INTEGER NOT NULL DEFAULT 0 CHECK (views >= 0),
            deleted         INTEGER NOT NULL DEFAULT 0
        )
        """,
        """
        CREATE VIEW IF NOT EXISTS active_video_metadata AS
            SELECT * FROM video_metadata WHERE deleted = 0
        """,
    )

    # Request-facing sort keys (both spellings) -> column names
    _SORTABLE = {
        "id": "id",
        "title": "title",
        "director": "director",
        "genre": "genre",
        "year_of_release": "year_of_release",
        "yearOfRelease": "year_of_release",
        "running_time": "running_time",
        "runningTime": "running_time",
        "impressions": "impressions",
        "views": "views",
    }

    def __init__(self, db_path: str | None = None) -> None:
        """Initialize the repository.

        Args:
            db_path: Path to SQLite database file. Defaults to settings.db_path.
                     Use ":memory:" for testing.
        """
        self._db_path = db_path or str(settings.db_path)
        # Shared across FastAPI worker threads; _lock serialises access
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.create_function(SQL_LOWER_FUNCTION, 1, _unicode_lower, deterministic=True)
        self._lock = threading.RLock()
        self._init_db()

    def _init_db(self) -> None:
        """Create the table and the active-rows view if they don't exist."""
        with self._lock, self._conn:
            for statement in self._SCHEMA:
                self._conn.execute(statement)

    def save(self, video: VideoMetadata) -> VideoMetadata:
        """Insert when ``video.id`` is None, otherwise overwrite the active row.

        Counters and location are written only on insert. Updating an id
        with no active row is a no-op.
        """
        running_time = video.running_time.total_seconds() if video.running_time is not None else None
        genre = video.genre.value if video.genre is not None else None
        try:
            with self._lock, self._conn:
                if video.id is None:
                    cursor = self._conn.execute(
                        """
                        INSERT INTO video_metadata (
                            title, synopsis, director, cast_members, year_of_release,
                            genre, running_time, video_location, impressions, views
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            video.title,
                            video.synopsis,
                            video.director,
                            video.cast_members,
                            video.year_of_release,
                            genre,
                            running_time,
                            video.video_location,
                            video.impressions,
                            video.views,
                        ),
                    )
                    video.id = cursor.lastrowid
                else:
                    self._conn.execute(
                        """
                        UPDATE video_metadata SET
                            title = ?, synopsis = ?, director = ?, cast_members = ?,
                            year_of_release = ?, genre = ?, running_time = ?
                        WHERE id = ? AND deleted = 0
                        """,
                        (
                            video.title,
                            video.synopsis,
                            video.director,
                            video.cast_members,
                            video.year_of_release,
                            genre,
                            running_time,
                            video.id,
                        ),
                    )
        except sqlite3.IntegrityError as e:
            raise ConstraintViolationError(f"A database constraint was violated: {e}") from e
        return video

    def find_by_id(self, video_id: int) -> VideoMetadata | None:
        """Retrieve an active record by id. Returns None if absent or deleted."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM active_video_metadata WHERE id = ?", (video_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_video(row)

    def exists_by_id(self, video_id: int) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM active_video_metadata WHERE id = ? LIMIT 1", (video_id,)
            ).fetchone()
        return row is not None

    def delete_by_id(self, video_id: int) -> None:
        """Flag the row as deleted. The row itself is kept."""
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE video_metadata SET deleted = 1 WHERE id = ? AND deleted = 0", (video_id,)
            )

    def find_all(self, search_filter: SearchFilter, page_request: PageRequest) -> Page[VideoMetadata]:
        """Return one page of active records matching the filter.

        Raises:
            InvalidSortError: If the page request orders by an unknown field.
        """
        where, params = search_filter.to_sql()
        order_by = self._order_by(page_request)
        with self._lock:
            total = self._conn.execute(
                f"SELECT COUNT(*) FROM active_video_metadata WHERE {where}", params
            ).fetchone()[0]
            rows = self._conn.execute(
                f"SELECT * FROM active_video_metadata WHERE {where} "
                f"ORDER BY {order_by} LIMIT ? OFFSET ?",
                [*params, page_request.size, page_request.offset],
            ).fetchall()
        return Page[VideoMetadata](
            content=[self._row_to_video(row) for row in rows],
            page=page_request.page,
            size=page_request.size,
            total_elements=total,
        )

    def increment_impressions(self, video_id: int) -> bool:
        return self._increment("impressions", video_id)

    def increment_views(self, video_id: int) -> bool:
        return self._increment("views", video_id)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _increment(self, column: str, video_id: int) -> bool:
        # Single UPDATE so concurrent requests never lose an increment
        with self._lock, self._conn:
            cursor = self._conn.execute(
                f"UPDATE video_metadata SET {column} = {column} + 1 WHERE id = ? AND deleted = 0",
                (video_id,),
            )
        return cursor.rowcount > 0

    def _order_by(self, page_request: PageRequest) -> str:
        terms = []
        for order in page_request.sort:
            column = self._SORTABLE.get(order.name)
            if column is None:
                raise InvalidSortError(f"Cannot sort by unknown field: {order.name}")
            terms.append(f"{column} {'DESC' if order.descending else 'ASC'}")
        # id as the final tiebreaker keeps paging stable
        if not any(t.startswith("id ") for t in terms):
            terms.append("id ASC")
        return ", ".join(terms)

    @staticmethod
    def _row_to_video(row: sqlite3.Row) -> VideoMetadata:
        """Convert a database row to a VideoMetadata model."""
        return VideoMetadata(
            id=row["id"],
            title=row["title"],
            synopsis=row["synopsis"],
            director=row["director"],
            cast_members=row["cast_members"],
            year_of_release=row["year_of_release"],
            genre=Genre(row["genre"]) if row["genre"] is not None else None,
            running_time=(
                timedelta(seconds=row["running_time"]) if row["running_time"] is not None else None
            ),
            video_location=row["video_location"],
            impressions=row["impressions"],
            views=row["views"],
        )
