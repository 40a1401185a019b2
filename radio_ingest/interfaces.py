"""Collaborator interfaces used by the audio processor."""

from pathlib import Path
from typing import Protocol

from .models import FilterChain, ProbeInfo


class Prober(Protocol):
    """Protocol for input analysis implementations.

    Implementations must never raise for an unreadable or unprobeable
    input; they report a fallback duration instead.
    """

    async def probe(self, path: Path) -> ProbeInfo:
        """Return duration and format information for an audio file."""
        ...


class Transcoder(Protocol):
    """Protocol for transcoder implementations."""

    async def transcode(self, inp: Path, out: Path, chain: FilterChain) -> None:
        """Transcode inp into out applying the filter chain and encoder arguments.

        Raises:
            TranscodeFailure: On non-zero exit, timeout or spawn error.
        """
        ...
