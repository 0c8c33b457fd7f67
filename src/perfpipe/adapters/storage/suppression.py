"""Filesystem storage adapter for the suppression marker."""

import os
from datetime import datetime, timezone
from pathlib import Path

from perfpipe.core.exceptions import SuppressionError


class FileSuppressionMarker:
    """File implementation of SuppressionMarkerPort.

    The marker is an empty file; its modification time is the only state
    consulted. Not safe against concurrent create/remove from several
    processes.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def modified_at(self) -> datetime | None:
        """Return the marker's mtime as an aware UTC datetime, None if absent."""
        try:
            mtime = self._path.stat().st_mtime
        except FileNotFoundError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    def create(self) -> None:
        """Create the marker or refresh its mtime.

        Raises:
            SuppressionError: If the marker cannot be written.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.touch(exist_ok=True)
        except OSError as exc:
            raise SuppressionError(
                f"Cannot write suppression marker {self._path}: {exc}"
            ) from exc

    def remove(self) -> bool:
        """Remove the marker. Returns False if it did not exist."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise SuppressionError(
                f"Cannot remove suppression marker {self._path}: {exc}"
            ) from exc
        return True
