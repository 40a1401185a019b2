"""
Exception taxonomy for pattern compilation and audio processing

Only CopyFailure ends a job as failed; the others are absorbed by the
invoker and turned into warnings or a fallback copy.
"""


class RadioIngestError(Exception):
    """Base exception for radio ingest errors"""


class InvalidPattern(RadioIngestError, ValueError):
    """Raised when a filename pattern cannot be compiled.

    Subclasses ValueError so that pydantic reports it as a validation
    error when a show profile is loaded.
    """

    def __init__(self, token: str, pattern: str, reason: str = None):
        self.token = token
        self.pattern = pattern
        message = reason or f'Unknown placeholder {token}'
        super().__init__(f'Invalid pattern "{pattern}": {message}')


class ProfileError(RadioIngestError):
    """Raised when a show profile file cannot be loaded"""


class ProbeUnavailable(RadioIngestError):
    """Raised by the prober internals when ffprobe fails or returns garbage"""


class InvalidTrimWindow(RadioIngestError):
    """Describes a trim window that does not fit the probed duration"""

    def __init__(self, start: float, end: float, duration: float):
        self.start = start
        self.end = end
        self.duration = duration
        super().__init__(
            f'Invalid trim window: start={start}, end={end}, '
            f'duration={duration}, trimDuration={end - start}'
        )


class TranscodeFailure(RadioIngestError):
    """Raised when the transcoder exits non-zero, times out or cannot be spawned"""

    def __init__(self, message: str, returncode: int = None, stderr: str = ''):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class CopyFailure(RadioIngestError):
    """Raised when copying the source file to its destination fails"""
