"""Bounded, persisted history of generated artifacts per media class."""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError as SchemaError

from ..models.enums import MediaClass
from ..models.schemas import Artifact, HistoryEntry
from ..utils.config import Config
from ..utils.errors import PersistenceError
from ..utils.logger import get_logger

logger = get_logger(__name__)

HISTORY_FILES = {
    MediaClass.IMAGE: "generated_images.json",
    MediaClass.VIDEO: "generated_videos.json",
}

DEFAULT_CAPACITIES = {
    MediaClass.IMAGE: 50,
    MediaClass.VIDEO: 20,
}


class HistoryStore:
    """
    Most-recent-first artifact log, one JSON file per media class.

    Each history is read from disk once, on first access, and rewritten on
    every append or clear. Unreadable data is treated as an empty history;
    persistence problems are logged and never raised to callers.
    """

    def __init__(
        self,
        directory: Path,
        capacities: Optional[Dict[MediaClass, int]] = None,
    ):
        """
        Initialize history store.

        Args:
            directory: Folder holding the history files
            capacities: Max entries per media class
        """
        self.directory = Path(directory)
        self.capacities = {**DEFAULT_CAPACITIES, **(capacities or {})}
        self._entries: Dict[MediaClass, List[HistoryEntry]] = {}

    @classmethod
    def from_config(cls, config: Config) -> "HistoryStore":
        return cls(
            directory=config.history_dir,
            capacities={
                MediaClass.IMAGE: config.history.image_capacity,
                MediaClass.VIDEO: config.history.video_capacity,
            },
        )

    def path_for(self, media_class: MediaClass) -> Path:
        return self.directory / HISTORY_FILES[media_class]

    # ═══════════════════════════════════════════════════════════════
    # PUBLIC API
    # ═══════════════════════════════════════════════════════════════

    def load(self, media_class: MediaClass) -> List[HistoryEntry]:
        """Return the history for a media class, newest first."""
        if media_class not in self._entries:
            try:
                self._entries[media_class] = self._read(media_class)
            except PersistenceError as e:
                logger.error(
                    f"Failed to load {media_class.value} history, starting empty: {e}",
                    extra={"media_class": media_class.value, "error": str(e)}
                )
                self._entries[media_class] = []

        return list(self._entries[media_class])

    def append(self, media_class: MediaClass, artifacts: List[Artifact]) -> List[HistoryEntry]:
        """
        Prepend artifacts and truncate to capacity.

        The first artifact in the list becomes the first history entry.

        Returns:
            The updated history
        """
        if not artifacts:
            return self.load(media_class)

        existing = self.load(media_class)
        next_sequence = max((entry.sequence for entry in existing), default=0) + 1
        top = next_sequence + len(artifacts) - 1

        new_entries = [
            HistoryEntry(artifact=artifact, sequence=top - offset)
            for offset, artifact in enumerate(artifacts)
        ]

        capacity = self.capacities[media_class]
        entries = (new_entries + existing)[:capacity]
        self._entries[media_class] = entries

        try:
            self._write(media_class, entries)
        except PersistenceError as e:
            logger.error(
                f"Failed to persist {media_class.value} history: {e}",
                extra={"media_class": media_class.value, "error": str(e)}
            )

        logger.info(
            f"History updated: {len(entries)}/{capacity} {media_class.value} entries",
            extra={
                "media_class": media_class.value,
                "added": len(artifacts),
                "stored": len(entries),
            }
        )
        return list(entries)

    def clear(self, media_class: MediaClass) -> None:
        """Drop the in-memory and the persisted history.

        If the file cannot be deleted it is overwritten with an empty list,
        so a restart does not bring the old entries back.
        """
        try:
            self.path_for(media_class).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(
                f"Failed to delete {media_class.value} history file, truncating instead: {e}",
                extra={"media_class": media_class.value, "error": str(e)}
            )
            try:
                self._write(media_class, [])
            except PersistenceError as write_error:
                logger.error(
                    f"Failed to clear {media_class.value} history file: {write_error}",
                    extra={"media_class": media_class.value, "error": str(write_error)}
                )

        self._entries[media_class] = []

        logger.info(f"{media_class.value} history cleared")

    # ═══════════════════════════════════════════════════════════════
    # STORAGE
    # ═══════════════════════════════════════════════════════════════

    def _read(self, media_class: MediaClass) -> List[HistoryEntry]:
        path = self.path_for(media_class)
        if not path.exists():
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Unreadable history file {path}: {e}")

        if not isinstance(raw, list):
            raise PersistenceError(f"History file {path} does not contain a list")

        try:
            entries = [HistoryEntry.model_validate(item) for item in raw]
        except SchemaError as e:
            raise PersistenceError(f"Malformed history entry in {path}: {e}")

        entries.sort(key=lambda entry: entry.sequence, reverse=True)
        return entries[:self.capacities[media_class]]

    def _write(self, media_class: MediaClass, entries: List[HistoryEntry]) -> None:
        path = self.path_for(media_class)
        payload = [entry.model_dump(mode="json") for entry in entries]

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False)
                os.replace(tmp_path, path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not write {path}: {e}")
