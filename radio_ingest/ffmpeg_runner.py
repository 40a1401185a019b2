"""
FFmpeg/ffprobe execution as awaitable child processes
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import ProbeUnavailable, TranscodeFailure
from .ffmpeg_builder import build_ffmpeg_cmd
from .models import FilterChain, ProbeInfo

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_DURATION = 300.0
STDERR_TAIL_CHARS = 2000


async def _kill(process):
    """Kill a child process and reap it"""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


async def run(cmd: List, timeout: Optional[float] = None) -> Tuple[int, str, str]:
    """Execute a command and capture its output.

    Raises asyncio.TimeoutError when the timeout expires and OSError when the
    binary cannot be spawned. On timeout or cancellation the child is killed.
    """
    # Ensure command list contains strings for Windows compatibility
    cmd_str = [str(c) for c in cmd]

    process = await asyncio.create_subprocess_exec(
        *cmd_str, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE)
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except (asyncio.TimeoutError, asyncio.CancelledError):
        await _kill(process)
        raise

    return (process.returncode,
            stdout.decode('utf-8', errors='replace'),
            stderr.decode('utf-8', errors='replace'))


def parse_probe_output(output: str) -> ProbeInfo:
    """Parse ffprobe JSON (-show_format -show_streams) into ProbeInfo"""
    try:
        info = json.loads(output or '')
    except json.JSONDecodeError as e:
        raise ProbeUnavailable(f'Unparsable ffprobe output: {e}')
    if not isinstance(info, dict):
        raise ProbeUnavailable('Unexpected ffprobe output')

    fmt = info.get('format') or {}
    try:
        duration = float(fmt['duration'])
    except (KeyError, TypeError, ValueError):
        raise ProbeUnavailable('ffprobe output has no usable duration')
    if duration <= 0:
        raise ProbeUnavailable(f'ffprobe reported non-positive duration {duration}')

    return ProbeInfo(
        duration=duration,
        format_name=fmt.get('format_name'),
        stream_count=len(info.get('streams') or []),
    )


class FFprobeProber:
    """Prober backed by ffprobe; any failure yields the fallback duration"""

    def __init__(self, ffprobe_path: str = 'ffprobe', timeout: Optional[float] = 30.0,
                 fallback_duration: float = DEFAULT_FALLBACK_DURATION):
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout
        self.fallback_duration = fallback_duration

    def build_cmd(self, path: Path) -> List[str]:
        return [
            self.ffprobe_path,
            '-v', 'quiet',
            '-print_format', 'json',
            '-show_format',
            '-show_streams',
            '-select_streams', 'a:0',
            str(path),
        ]

    def fallback(self, path: Path, reason: str) -> ProbeInfo:
        logger.warning('ffprobe unavailable for %s (%s), assuming %ss duration',
                       path, reason, self.fallback_duration)
        return ProbeInfo(duration=self.fallback_duration, stream_count=1, fallback_used=True)

    async def probe(self, path: Path) -> ProbeInfo:
        try:
            code, out, err = await run(self.build_cmd(path), self.timeout)
        except asyncio.TimeoutError:
            return self.fallback(path, f'timed out after {self.timeout}s')
        except OSError as e:
            return self.fallback(path, str(e))

        if code != 0:
            return self.fallback(path, f'exit code {code}: {err.strip()[-STDERR_TAIL_CHARS:]}')

        try:
            info = parse_probe_output(out)
        except ProbeUnavailable as e:
            return self.fallback(path, str(e))

        logger.debug('Audio info for %s: duration=%s, streams=%s, format=%s',
                     path, info.duration, info.stream_count, info.format_name)
        return info


class FFmpegTranscoder:
    """Transcoder backed by ffmpeg"""

    def __init__(self, ffmpeg_path: str = 'ffmpeg', timeout: Optional[float] = 3600.0):
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    async def transcode(self, inp: Path, out: Path, chain: FilterChain) -> None:
        cmd = build_ffmpeg_cmd(self.ffmpeg_path, inp, out, chain)
        logger.debug('FFmpeg command: %s', ' '.join(cmd))

        try:
            code, _, err = await run(cmd, self.timeout)
        except asyncio.TimeoutError:
            raise TranscodeFailure(f'FFmpeg timed out after {self.timeout}s')
        except OSError as e:
            raise TranscodeFailure(f'FFmpeg error: {e}')

        if code != 0:
            tail = err.strip()[-STDERR_TAIL_CHARS:]
            raise TranscodeFailure(f'FFmpeg failed with code {code}: {tail}', code, err)


async def check_ffmpeg_availability(ffmpeg_path: str = 'ffmpeg', timeout: float = 10.0) -> bool:
    """Check whether the ffmpeg binary can be executed"""
    try:
        code, _, _ = await run([ffmpeg_path, '-version'], timeout)
    except (OSError, asyncio.TimeoutError):
        return False
    return code == 0
