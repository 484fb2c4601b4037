"""Dataset service - read-only access to the embedded trail dataset.

Wraps a SQLite file bundled with the client:
- Explicit init()/close() lifecycle with a well-defined "not ready" state
- Optional one-time download when the local file is missing
- Load-time validation that the expected relations exist
- Thread-safe, idempotent initialization

Only query() is exposed to dependents. Callers bind values through params;
SQL text never contains user input.
"""

import logging
import sqlite3
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import requests

from trail_explorer.constants import DatasetConfig
from trail_explorer.errors import DatasetLoadError, DatasetNotReadyError, DatasetQueryError

logger = logging.getLogger(__name__)


def download_dataset(
    url: str,
    target_path: Path = DatasetConfig.DB_PATH,
    progress_callback: Optional[Callable[[float], None]] = None,
) -> Path:
    """Download the dataset file if not already present.

    Args:
        url: Remote location of the SQLite file.
        target_path: Local path to save the dataset file.
        progress_callback: Optional callback receiving progress 0.0-1.0.

    Returns:
        Path to the downloaded (or existing) dataset file.

    Raises:
        requests.RequestException: If download fails.
    """
    if target_path.exists():
        logger.info(f"Dataset already exists at {target_path}")
        return target_path

    target_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading trail dataset from {url}...")

    response = requests.get(url, stream=True, timeout=DatasetConfig.DOWNLOAD_TIMEOUT_S)
    response.raise_for_status()

    total_size = int(response.headers.get("content-length", 0))
    downloaded = 0

    # Write to a temp name so an interrupted download never looks complete
    partial_path = target_path.with_suffix(target_path.suffix + ".part")
    with open(partial_path, "wb") as f:
        for chunk in response.iter_content(chunk_size=DatasetConfig.DOWNLOAD_CHUNK_BYTES):
            f.write(chunk)
            downloaded += len(chunk)
            if progress_callback and total_size > 0:
                progress_callback(downloaded / total_size)
    partial_path.replace(target_path)

    logger.info(f"Dataset downloaded to {target_path}")
    return target_path


class DatasetState(Enum):
    """Lifecycle of the dataset handle."""

    NOT_LOADED = "not_loaded"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class DatasetService:
    """Session-wide read-only handle on the trail dataset.

    One instance per session (the host keeps it in st.session_state).
    init() loads at most once; a failed load stays failed until retry().

    Example:
        dataset = DatasetService(db_path=Path("data/california_trails.db"))
        dataset.init()
        rows = dataset.query("SELECT * FROM trail_summary WHERE Rating >= ?", [4.5])
        dataset.close()
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        download_url: Optional[str] = None,
        progress_callback: Optional[Callable[[float], None]] = None,
    ) -> None:
        """Create an unloaded handle.

        Args:
            db_path: Dataset file (uses DatasetConfig.DB_PATH by default)
            download_url: Fetched once if db_path is missing (DatasetConfig.DOWNLOAD_URL by default)
            progress_callback: Download progress callback receiving 0.0-1.0
        """
        self._db_path = db_path or DatasetConfig.DB_PATH
        self._download_url = download_url if download_url is not None else DatasetConfig.DOWNLOAD_URL
        self._progress_callback = progress_callback
        self._load_lock = threading.Lock()
        self._connection: Optional[sqlite3.Connection] = None
        self._state = DatasetState.NOT_LOADED
        self._error: Optional[DatasetLoadError] = None

    @property
    def state(self) -> DatasetState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        """Check if the dataset is open and queryable."""
        return self._state is DatasetState.READY

    @property
    def error(self) -> Optional[str]:
        """Load error text, if the last load attempt failed."""
        return str(self._error) if self._error else None

    @property
    def db_path(self) -> Path:
        return self._db_path

    def set_progress_callback(self, progress_callback: Optional[Callable[[float], None]]) -> None:
        """Replace the download progress callback (used by the next load attempt)."""
        self._progress_callback = progress_callback

    def init(self) -> None:
        """Load the dataset (idempotent, thread-safe).

        Raises:
            DatasetLoadError: If the file cannot be fetched, opened or validated,
                or a previous attempt failed and retry() was not called.
            DatasetNotReadyError: If the handle was already closed.
        """
        # Fast path: already loaded
        if self.is_loaded:
            return

        with self._load_lock:
            # Double-check after acquiring lock
            if self.is_loaded:
                return
            if self._state is DatasetState.CLOSED:
                raise DatasetNotReadyError("Dataset handle was closed; create a new session")
            if self._state is DatasetState.FAILED and self._error is not None:
                raise self._error

            try:
                self._connection = self._open()
            except DatasetLoadError as e:
                self._state = DatasetState.FAILED
                self._error = e
                logger.error(f"Dataset load failed: {e}")
                raise
            self._state = DatasetState.READY

    def retry(self) -> None:
        """Clear a failed load and try again."""
        with self._load_lock:
            if self._state is DatasetState.FAILED:
                logger.info("Retrying dataset load")
                self._state = DatasetState.NOT_LOADED
                self._error = None
        self.init()

    def close(self) -> None:
        """Release the connection (idempotent)."""
        with self._load_lock:
            if self._state is DatasetState.CLOSED:
                return
            if self._connection is not None:
                self._connection.close()
                self._connection = None
            self._state = DatasetState.CLOSED
            logger.info("Dataset closed")

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a read-only query with positional parameter binding.

        Args:
            sql: SQL text with '?' placeholders
            params: Values bound to the placeholders, in order

        Returns:
            One dict per row, keyed by column name.

        Raises:
            DatasetNotReadyError: If init() has not succeeded or close() was called.
            DatasetQueryError: If the engine rejects or fails the query.
        """
        if not self.is_loaded or self._connection is None:
            raise DatasetNotReadyError(f"Dataset not ready (state={self._state.value})")

        bound = tuple(params)
        try:
            cursor = self._connection.execute(sql, bound)
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise DatasetQueryError(f"Query failed: {e}", sql=sql, params=bound) from e
        return [dict(row) for row in rows]

    def _open(self) -> sqlite3.Connection:
        """Fetch (if needed), open read-only and validate the dataset file."""
        db_path = self._db_path

        if not db_path.exists():
            if not self._download_url:
                raise DatasetLoadError(f"Dataset file not found at {db_path}")
            try:
                download_dataset(
                    url=self._download_url,
                    target_path=db_path,
                    progress_callback=self._progress_callback,
                )
            except requests.RequestException as e:
                raise DatasetLoadError(f"Failed to download dataset: {e}") from e

        logger.info(f"Loading trail dataset from {db_path}...")
        start_time = time.time()

        try:
            connection = sqlite3.connect(
                f"{db_path.resolve().as_uri()}?mode=ro",
                uri=True,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise DatasetLoadError(f"Cannot open dataset {db_path}: {e}") from e
        connection.row_factory = sqlite3.Row

        try:
            rows = connection.execute(
                "SELECT name FROM sqlite_master WHERE type IN ('table', 'view')"
            ).fetchall()
        except sqlite3.Error as e:
            connection.close()
            raise DatasetLoadError(f"Dataset {db_path} is not a readable SQLite file: {e}") from e

        relations = {row["name"] for row in rows}
        missing = [name for name in DatasetConfig.REQUIRED_RELATIONS if name not in relations]
        if missing:
            connection.close()
            raise DatasetLoadError(f"Dataset {db_path} is missing relations: {', '.join(missing)}")

        elapsed = time.time() - start_time
        logger.info(f"Trail dataset loaded in {elapsed:.2f}s ({len(relations)} relations)")
        return connection
