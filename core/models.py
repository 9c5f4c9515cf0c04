# core/models.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MediaKind(Enum):
    MOVIE = "movie"
    EPISODE = "episode"
    TRACK = "track"
    UNKNOWN = "unknown"


class PlayState(Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    BUFFERING = "buffering"


STATE_TEXT = {
    PlayState.PLAYING: "Playing",
    PlayState.PAUSED: "Paused",
    PlayState.BUFFERING: "Buffering",
}

# Kinds whose title is prefixed with the show / artist name.
_PREFIXED_KINDS = {
    MediaKind.MOVIE: False,
    MediaKind.EPISODE: True,
    MediaKind.TRACK: True,
    MediaKind.UNKNOWN: False,
}


def duration_text(ms: int) -> str:
    """Format milliseconds as M:SS or H:MM:SS (truncated, never rounded)."""
    total_secs = ms // 1000
    hours, rest = divmod(total_secs, 3600)
    mins, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def episode_code(season: Optional[int], episode: Optional[int]) -> str:
    if season is not None and episode is not None:
        return f"S{season:02d}E{episode:02d}"
    if season is not None:
        return f"S{season:02d}"
    if episode is not None:
        return f"E{episode:02d}"
    return ""


@dataclass(frozen=True)
class PlaybackRecord:
    title: str
    media_kind: MediaKind
    play_state: PlayState
    year: Optional[int] = None
    series_or_artist: Optional[str] = None
    album_or_season_label: Optional[str] = None
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    artwork_reference: Optional[str] = None
    duration_ms: Optional[int] = None
    elapsed_ms: Optional[int] = None

    @property
    def playing(self) -> bool:
        return self.play_state is PlayState.PLAYING

    def display_title(self) -> str:
        if _PREFIXED_KINDS[self.media_kind]:
            if self.series_or_artist is not None:
                return f"{self.series_or_artist} - {self.title}"
            return self.title
        if self.year is not None:
            return f"{self.title} ({self.year})"
        return self.title

    def state_text(self) -> str:
        return STATE_TEXT[self.play_state]

    def progress_text(self) -> Optional[str]:
        if self.elapsed_ms is None or self.duration_ms is None:
            return None
        return f"{duration_text(self.elapsed_ms)} / {duration_text(self.duration_ms)}"

    def decoration(self) -> str:
        """Kind specific detail shown next to the progress (S01E05, album name)."""
        return _DECORATIONS[self.media_kind](self)

    def state_line(self) -> str:
        """
        Second presence line: decoration and progress joined by " | ",
        whichever one exists otherwise. Movies with neither fall back
        to the player state.
        """
        decoration = self.decoration()
        progress = self.progress_text() or ""
        if decoration and progress:
            return f"{decoration} | {progress}"
        if decoration or progress:
            return decoration or progress
        return _EMPTY_STATE_LINES[self.media_kind](self)

    def status_text(self) -> str:
        progress = self.progress_text()
        if progress:
            return f"{self.display_title()} [{progress}]"
        return f"{self.display_title()} ({self.state_text()})"


_DECORATIONS = {
    MediaKind.MOVIE: lambda r: "",
    MediaKind.EPISODE: lambda r: episode_code(r.season_number, r.episode_number),
    MediaKind.TRACK: lambda r: r.album_or_season_label or "",
    MediaKind.UNKNOWN: lambda r: "",
}

_EMPTY_STATE_LINES = {
    MediaKind.MOVIE: PlaybackRecord.state_text,
    MediaKind.EPISODE: lambda r: "",
    MediaKind.TRACK: lambda r: "",
    MediaKind.UNKNOWN: PlaybackRecord.state_text,
}
