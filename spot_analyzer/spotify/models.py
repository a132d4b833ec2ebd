"""
Data models for Spotify entities.

This module defines immutable dataclasses for the two kinds of objects
the analyzer works with: tracks listed from a playlist (or the Liked
Songs library) and the audio analysis of a single track.

Design Decisions:
    - All dataclasses are frozen (immutable) to prevent accidental modification
    - AnalysisResult serializes to the same shape as the audio-features
      payload, so the cache file stays readable and hand-editable
    - Failed analyses are AnalysisResult instances too (error is set),
      which lets them be cached like successful ones

Usage:
    from spot_analyzer.spotify.models import Track, AnalysisResult

    track = Track.from_playlist_item(item)
    result = AnalysisResult.from_api(payload)
"""

from dataclasses import dataclass
from typing import Any

from spot_analyzer.core.exceptions import PerTrackAnalysisError


SPOTIFY_TRACK_URL = "https://open.spotify.com/track/{track_id}"


@dataclass(frozen=True)
class Track:
    """
    Immutable representation of a Spotify track.

    Attributes:
        id: Unique Spotify track ID (22-character base62 string).
            Example: "4cOdK2wGLETKBW3PvgPWqT"

        name: Track title as it appears on Spotify.
              Example: "Schism"

        artists: Names of all credited artists, in Spotify's order.
                 Example: ("Tool",) or ("Calvin Harris", "Dua Lipa")
    """

    id: str
    name: str
    artists: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, track_data: dict[str, Any]) -> "Track":
        """
        Create a Track from a Spotify track object.

        Args:
            track_data: The track object, e.g. the 'track' field of a
                        playlist item or the 'item' field of the
                        currently-playing response.

        Raises:
            KeyError: If the track object has no 'id'.
        """
        artists = tuple(
            artist.get("name", "")
            for artist in track_data.get("artists") or []
            if isinstance(artist, dict)
        )
        return cls(
            id=track_data["id"],
            name=track_data.get("name") or "Unknown",
            artists=artists,
        )

    @classmethod
    def from_playlist_item(cls, item: dict[str, Any]) -> "Track | None":
        """
        Create a Track from a playlist/saved-tracks item.

        Returns:
            The Track, or None for items without a usable track
            (removed tracks come back as null, local files have no id).
        """
        track_data = item.get("track") if isinstance(item, dict) else None
        if not isinstance(track_data, dict) or not track_data.get("id"):
            return None
        return cls.from_api(track_data)

    @property
    def all_artists(self) -> str:
        """All artist names joined with ', '."""
        return ", ".join(self.artists)

    @property
    def display_name(self) -> str:
        """Name shown in reports, e.g. 'Schism (Tool)'."""
        return f"{self.name} ({self.all_artists})"

    @property
    def url(self) -> str:
        """Public Spotify URL of the track."""
        return SPOTIFY_TRACK_URL.format(track_id=self.id)


@dataclass(frozen=True)
class AnalysisResult:
    """
    Audio analysis attributes of one track.

    Attributes:
        tempo: Estimated tempo in BPM. 0.0 for failed analyses.
        time_signature: Estimated beats per bar (3 to 7). 0 for failed analyses.
        key: Pitch class of the track (0 = C, 1 = C#/Db, ... -1 = not detected).
        error: Error message if the analysis failed, None otherwise.
    """

    tempo: float = 0.0
    time_signature: int = 0
    key: int = -1
    error: str | None = None

    @classmethod
    def failure(cls, message: str) -> "AnalysisResult":
        """Create the sentinel result stored for a track that can't be analyzed."""
        return cls(error=message)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisResult":
        """
        Create an AnalysisResult from its serialized form.

        Accepts both cache entries and raw audio-features payloads, since
        they share the same shape.

        Raises:
            ValueError: If a successful entry lacks a required field or a
                        field has the wrong type or an infinite value.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message") or f"HTTP {error.get('status', '?')}"
            else:
                message = str(error)
            return cls.failure(message)

        try:
            return cls(
                tempo=float(data["tempo"]),
                time_signature=int(data["time_signature"]),
                key=int(data["key"]),
            )
        except (KeyError, TypeError, OverflowError) as e:
            raise ValueError(f"malformed analysis: {e!r}") from e

    @classmethod
    def from_api(cls, payload: Any, track_id: str | None = None) -> "AnalysisResult":
        """
        Create an AnalysisResult from an audio-features response body.

        An error payload gives a failed result; it does not raise.

        Raises:
            PerTrackAnalysisError: If the payload can't be interpreted at all.
        """
        try:
            return cls.from_dict(payload)
        except ValueError as e:
            raise PerTrackAnalysisError(
                f"Unexpected audio features response: {e}",
                details={"track_id": track_id}
            ) from e

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the same shape as the audio-features payload."""
        if self.error is not None:
            return {"error": {"message": self.error}}
        return {
            "tempo": self.tempo,
            "time_signature": self.time_signature,
            "key": self.key,
        }

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def bpm(self) -> int:
        """Tempo rounded to the nearest whole beat."""
        return round(self.tempo)

    @property
    def is_odd_time(self) -> bool:
        """True for odd meters (3/4, 5/4, 7/8)."""
        return self.time_signature % 2 == 1

    @property
    def signature(self) -> str:
        """
        Time signature as a fraction.

        Spotify only reports beats per bar; meters above 5 are shown
        over 8, everything else over 4.
        """
        bottom = 8 if self.time_signature > 5 else 4
        return f"{self.time_signature}/{bottom}"
