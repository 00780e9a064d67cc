"""Candidate clip interval."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VideoCut:
    """A proposed [start, end) time range for a short clip.

    Cuts coming straight from a suggestion service may be inverted, negative
    or zero-length until they pass through ``filter_valid``.
    """
    start: float
    end: float
    description: Optional[str] = None

    @property
    def duration(self) -> float:
        return self.end - self.start

    def __repr__(self):
        return f"VideoCut({self.start:.2f}-{self.end:.2f}, dur={self.duration:.2f}s)"

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "end": self.end,
            "duration": self.duration,
            "description": self.description,
        }
