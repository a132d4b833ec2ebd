"""
Persistent analysis cache for spot-analyzer.

Maps a Spotify track ID to the AnalysisResult fetched for it, so each
track is analyzed through the API at most once across runs.

File Format:
    A single JSON object, pretty-printed so it can be inspected, edited
    or deleted by hand to force re-analysis:

        {
          "4cOdK2wGLETKBW3PvgPWqT": {"tempo": 120.1, "time_signature": 4, "key": 7},
          "0nJW01T7XtvILxQgC5J7Wh": {"error": {"message": "analysis not found"}}
        }

Cache Keys:
    Keys are track IDs. Older files may also contain entries keyed by
    "Name (Artist)" strings; they are kept on disk untouched but never
    looked up, so those tracks get re-analyzed once under their ID.

Lifecycle:
    The cache is loaded once when a run starts, mutated in memory and
    written back in full when the run ends. Used as a context manager,
    the write happens on every exit path, including Ctrl-C and fatal
    errors, so finished work is never lost:

        with AnalysisCache(path) as cache:
            result = cache.get_or_compute(track.id, lambda: fetch(track))
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterator

from spot_analyzer.core.exceptions import CacheError
from spot_analyzer.core.logger import get_logger
from spot_analyzer.spotify.models import AnalysisResult

logger = get_logger(__name__)


class AnalysisCache:
    """
    Read-through cache of analysis results persisted as JSON.

    Entries that cannot be parsed are kept verbatim and written back
    unchanged, so a hand-edited file never loses data on save.

    Attributes:
        path: Location of the JSON cache file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: dict[str, AnalysisResult] = {}
        self._unparsed: dict[str, Any] = {}
        self._loaded = False

    def __enter__(self) -> "AnalysisCache":
        if not self._loaded:
            self.load()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.save()
            return

        # The exception already propagating decides the exit status
        try:
            self.save()
        except CacheError as e:
            logger.error(f"{e.message} (while handling {exc_type.__name__})")

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def get(self, key: str) -> AnalysisResult | None:
        return self._entries.get(key)

    def load(self) -> None:
        """
        Load entries from disk, replacing the in-memory state.

        A missing, empty or corrupt file results in an empty cache; a
        corrupt file is logged as a warning, never raised.
        """
        self._entries = {}
        self._unparsed = {}
        self._loaded = True

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            logger.debug(f"No analysis cache at {self.path}, starting empty")
            return
        except OSError as e:
            logger.warning(f"Could not read analysis cache {self.path}: {e}")
            return

        if not content.strip():
            return

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Analysis cache {self.path} is corrupt, starting empty: {e}")
            return

        if not isinstance(raw, dict):
            logger.warning(f"Analysis cache {self.path} is not a JSON object, starting empty")
            return

        for key, value in raw.items():
            try:
                self._entries[key] = AnalysisResult.from_dict(value)
            except ValueError as e:
                logger.debug(f"Skipping unreadable cache entry {key!r}: {e}")
                self._unparsed[key] = value

        logger.debug(f"Loaded {len(self._entries)} cached analyses from {self.path}")

    def save(self) -> None:
        """
        Write the whole cache to disk atomically.

        The JSON is written to a temporary file next to the cache and then
        moved over it, so an interrupted write leaves the previous file
        intact.

        Raises:
            CacheError: If the file cannot be written.
        """
        data: dict[str, Any] = dict(self._unparsed)
        data.update((key, result.to_dict()) for key, result in self._entries.items())

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f"{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise CacheError(
                f"Failed to write analysis cache: {e}",
                details={"path": str(self.path), "original_error": str(e)}
            ) from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        logger.debug(f"Saved {len(self._entries)} analyses to {self.path}")

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], AnalysisResult]
    ) -> AnalysisResult:
        """
        Return the cached result for key, computing and storing it if absent.

        compute is called at most once, and only on a miss. Its result is
        stored even when it is a failure, so a track that can't be analyzed
        is not requested again on every run.

        Args:
            key: Track ID.
            compute: Zero-argument callable producing the result.

        Returns:
            The cached or freshly computed AnalysisResult.
        """
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        result = compute()
        self._entries[key] = result
        self._unparsed.pop(key, None)
        return result

    def discard_errors(self) -> int:
        """
        Drop every failed result so those tracks are analyzed again.

        Returns:
            Number of entries removed.
        """
        failed = [key for key, result in self._entries.items() if result.is_error]
        for key in failed:
            del self._entries[key]
        return len(failed)
