"""
Session Repository - manages loading and caching of decoded sessions.

Sessions are session archives (.zip) in a folder. Decoded TrackModels are
cached in memory; the API only talks to this layer.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional

from tracksalvage.config import DecodeOptions
from tracksalvage.errors import DecodeError
from tracksalvage.models.track import SessionSummary, TrackModel
from tracksalvage.services.decoder import decode_session


logger = logging.getLogger(__name__)


class SessionRepository:
    """
    Repository for decoded sessions.

    Reads session archives from a folder and caches decoded sessions in
    memory.
    """

    def __init__(self, data_folder: Optional[Path] = None, options: Optional[DecodeOptions] = None):
        """
        Initialize the repository.

        Args:
            data_folder: Folder containing session archives. If None, must be set later.
            options: Decode options used unless a reload overrides them
        """
        self._data_folder: Optional[Path] = data_folder
        self._options = options or DecodeOptions()
        self._cache: dict[str, TrackModel] = {}
        self._index: dict[str, Path] = {}  # id -> archive path

        if data_folder is not None:
            self.scan_folder(data_folder)

    @property
    def data_folder(self) -> Optional[Path]:
        return self._data_folder

    @property
    def options(self) -> DecodeOptions:
        return self._options

    @property
    def session_count(self) -> int:
        return len(self._index)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._index

    def set_data_folder(self, folder: Path) -> int:
        """
        Set the data folder and scan it.

        Returns:
            Number of archives found
        """
        self._data_folder = folder
        self._cache.clear()
        self._index.clear()
        return self.scan_folder(folder)

    def rescan(self) -> int:
        """
        Rebuild the index from the current data folder.

        Archives removed since the last scan drop out of the index.

        Returns:
            Number of archives found
        """
        if self._data_folder is None:
            return 0
        self._cache.clear()
        self._index.clear()
        return self.scan_folder(self._data_folder)

    def scan_folder(self, folder: Path) -> int:
        """Index the *.zip archives in a folder and return how many were found."""
        if not folder.exists():
            logger.warning(f"Data folder does not exist: {folder}")
            return 0

        count = 0
        for archive in sorted(folder.glob("*.zip")):
            if archive.is_file():
                session_id = self._filepath_to_id(archive)
                self._index[session_id] = archive
                count += 1
                logger.debug(f"Indexed session: {session_id} -> {archive.name}")

        logger.info(f"Scanned {count} session archives in {folder}")
        return count

    def list_sessions(self) -> list[SessionSummary]:
        """
        List all sessions that decode.

        Archives that fail at the container level are logged and left out.
        """
        summaries = []
        for session_id, filepath in self._index.items():
            track = self.get_session(session_id)
            if track is not None:
                summaries.append(SessionSummary.from_track(session_id, filepath.stem, filepath.name, track))

        # Newest first, then by name
        summaries.sort(key=lambda s: (s.recorded_at or "", s.name), reverse=True)
        return summaries

    def get_session(self, session_id: str) -> Optional[TrackModel]:
        """
        Get a decoded session by ID.

        Returns:
            TrackModel if found and decodable, None otherwise
        """
        if session_id in self._cache:
            return self._cache[session_id]

        if session_id not in self._index:
            return None

        try:
            return self._load_session(session_id, self._options)
        except DecodeError as e:
            logger.error(f"Failed to decode session {session_id}: {e}")
            return None

    def get_source_file(self, session_id: str) -> Optional[Path]:
        return self._index.get(session_id)

    def reload_session(self, session_id: str, options: Optional[DecodeOptions] = None) -> Optional[TrackModel]:
        """
        Decode a session again, optionally with different options.

        The result replaces the cached entry.
        """
        if session_id not in self._index:
            return None

        self._cache.pop(session_id, None)

        try:
            return self._load_session(session_id, options or self._options)
        except DecodeError as e:
            logger.error(f"Failed to reload session {session_id}: {e}")
            return None

    def _load_session(self, session_id: str, options: DecodeOptions) -> TrackModel:
        filepath = self._index[session_id]
        track = decode_session(filepath, options)
        self._cache[session_id] = track
        logger.debug(f"Decoded and cached session: {session_id}")
        return track

    def _filepath_to_id(self, filepath: Path) -> str:
        """Generate a consistent ID from filename, size and mtime."""
        stat = filepath.stat()
        id_string = f"{filepath.name}_{stat.st_size}_{stat.st_mtime}"
        return hashlib.sha256(id_string.encode()).hexdigest()[:16]


# Global repository instance (set up by app initialization)
_repository: Optional[SessionRepository] = None


def get_repository() -> SessionRepository:
    """Get the global repository instance."""
    global _repository
    if _repository is None:
        _repository = SessionRepository()
    return _repository


def init_repository(data_folder: Path, options: Optional[DecodeOptions] = None) -> SessionRepository:
    """Initialize the global repository with a data folder."""
    global _repository
    _repository = SessionRepository(data_folder, options)
    return _repository
