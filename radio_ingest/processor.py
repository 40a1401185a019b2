"""
Main file processing logic

AudioProcessor drives a single job through its states:

    idle -> probing -> building_filters -> transcoding -> done
    idle -> probing -> direct_copy -> done | failed
    transcoding -> fallback_copy -> done | failed

Probing never fails a job and a failed transcode falls back to copying the
original; only a failed copy ends the job as failed.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import Settings
from .errors import CopyFailure, RadioIngestError, TranscodeFailure
from .extractor import extract_date, extract_from_path
from .ffmpeg_builder import DEFAULT_FADE_SECONDS, build_ffmpeg_cmd, build_filter_chain
from .ffmpeg_runner import FFmpegTranscoder, FFprobeProber
from .file_utils import (
    copy_file, generate_output_filename, remove_partial_output, reserve_output_path,
)
from .interfaces import Prober, Transcoder
from .models import (
    FilterChain, JobState, ProbeInfo, ProcessingOptions, ProcessingResult, ShowProfile,
)
from .options import needs_processing, resolve_processing_options
from .patterns import compile_pattern, find_matching_pattern

logger = logging.getLogger(__name__)

FALLBACK_MARKER = 'used copy fallback'


class AudioProcessor:
    """Runs probe, transcode and copy collaborators for one job at a time"""

    def __init__(self, prober: Prober, transcoder: Transcoder,
                 copier: Callable[[Path, Path], Path] = copy_file,
                 fade_in_duration: float = DEFAULT_FADE_SECONDS,
                 fade_out_duration: float = DEFAULT_FADE_SECONDS):
        self.prober = prober
        self.transcoder = transcoder
        self.copier = copier
        self.fade_in_duration = fade_in_duration
        self.fade_out_duration = fade_out_duration

    async def _copy(self, src: Path, dst: Path):
        copy_task = asyncio.ensure_future(asyncio.to_thread(self.copier, src, dst))
        try:
            await asyncio.shield(copy_task)
        except asyncio.CancelledError:
            # The copy thread cannot be interrupted; let it finish before cleaning up
            await asyncio.wait([copy_task])
            if not copy_task.cancelled():
                copy_task.exception()
            remove_partial_output(dst)
            raise

    async def process_audio(self, src: Path, dst: Path, options: ProcessingOptions,
                            needs: Optional[bool] = None) -> ProcessingResult:
        """Process one file into dst; always returns a terminal result"""
        started = time.monotonic()
        history = [JobState.IDLE]
        warnings: List[str] = []
        if needs is None:
            needs = needs_processing(options)

        def finish(state: JobState, **fields) -> ProcessingResult:
            history.append(state)
            return ProcessingResult(
                success=state == JobState.DONE, state=state, history=history,
                warnings=warnings, processing_time=time.monotonic() - started, **fields)

        logger.info('Starting audio processing: %s', src.name)

        history.append(JobState.PROBING)
        probe = await self.prober.probe(src)
        if probe.fallback_used:
            warnings.append(f'Probe unavailable, assumed {probe.duration}s duration')

        if not needs:
            history.append(JobState.DIRECT_COPY)
            logger.info('No audio processing needed, copying %s', src.name)
            try:
                await self._copy(src, dst)
            except (CopyFailure, OSError) as e:
                logger.error('Copy failed for %s: %s', src.name, e)
                return finish(JobState.FAILED, error=str(e))
            return finish(JobState.DONE, output_path=dst)

        history.append(JobState.BUILDING_FILTERS)
        chain = build_filter_chain(options, probe, self.fade_in_duration,
                                   self.fade_out_duration, source=src.name)
        warnings.extend(chain.warnings)

        history.append(JobState.TRANSCODING)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            await self.transcoder.transcode(src, dst, chain)
        except asyncio.CancelledError:
            remove_partial_output(dst)
            raise
        except (TranscodeFailure, OSError) as e:
            transcode_error = str(e)
        else:
            logger.info('Audio processing completed: %s', dst.name)
            return finish(JobState.DONE, output_path=dst, transcoded=True,
                          original_duration=probe.duration,
                          processed_duration=chain.output_duration)

        logger.error('Audio processing failed for %s: %s', src.name, transcode_error)
        remove_partial_output(dst)

        history.append(JobState.FALLBACK_COPY)
        try:
            await self._copy(src, dst)
        except (CopyFailure, OSError) as e:
            logger.error('Fallback copy failed for %s: %s', src.name, e)
            return finish(JobState.FAILED, error=str(e))

        logger.warning('Audio processing failed, used file copy as fallback for %s', src.name)
        return finish(JobState.DONE, output_path=dst, used_fallback=True,
                      error=f'Audio processing failed ({transcode_error}), {FALLBACK_MARKER}')


def create_audio_processor(settings: Settings) -> AudioProcessor:
    """Wire the ffprobe/ffmpeg collaborators from settings"""
    prober = FFprobeProber(settings.ffprobe_path, settings.probe_timeout, settings.fallback_duration)
    transcoder = FFmpegTranscoder(settings.ffmpeg_path, settings.transcode_timeout)
    return AudioProcessor(prober, transcoder,
                          fade_in_duration=settings.fade_in_seconds,
                          fade_out_duration=settings.fade_out_seconds)


def resolve_output_dir(show: ShowProfile, settings: Settings, out_dir: Optional[Path] = None) -> Path:
    if out_dir:
        return out_dir
    if show.output_directory:
        # Profiles sometimes carry quoted paths
        return Path(str(show.output_directory).strip().strip('"\''))
    return settings.output_base_dir


def plan_file(src: Path, show: ShowProfile, settings: Settings, out_dir: Optional[Path] = None) -> dict:
    """Work out extraction, options and output path for a file without touching it"""
    file_pattern = find_matching_pattern(src.name, show.file_patterns, None)
    if file_pattern is None and show.file_patterns:
        # Same as the first pattern rule: extraction will fail, dates fall back to today
        file_pattern = show.file_patterns[0]

    extraction = None
    if file_pattern is not None:
        extraction = extract_from_path(src, compile_pattern(file_pattern.pattern))
    extracted_date = extract_date(extraction)

    options, needs = resolve_processing_options(show, extracted_date)
    # Pass-through copies keep their bytes, so they keep their extension too
    extension = None if needs else src.suffix.lower()
    filename = generate_output_filename(src.name, show, extracted_date, extension)

    return {
        'source': src,
        'pattern': file_pattern.pattern if file_pattern else None,
        'extraction': extraction,
        'extracted_date': extracted_date,
        'options': options,
        'needs_processing': needs,
        'output_path': resolve_output_dir(show, settings, out_dir) / filename,
    }


def describe_command(plan: dict, settings: Settings, probe: ProbeInfo) -> Tuple[Optional[FilterChain], List[str]]:
    """Filter chain and transcoder command a plan would run for the given probe result"""
    if not plan['needs_processing']:
        return None, []
    chain = build_filter_chain(plan['options'], probe, settings.fade_in_seconds,
                               settings.fade_out_seconds, source=plan['source'].name)
    return chain, build_ffmpeg_cmd(settings.ffmpeg_path, plan['source'], plan['output_path'], chain)


async def process_file(src: Path, show: ShowProfile, processor: AudioProcessor,
                       settings: Settings, out_dir: Optional[Path] = None) -> ProcessingResult:
    """Process a single incoming file of a show"""
    logger.info('Starting to process file: %s', src.name)
    try:
        ext = src.suffix.lower()
        if ext not in settings.extensions:
            raise RadioIngestError(f'Unsupported file extension: {ext}')
        if not src.is_file():
            raise CopyFailure(f'Source file not found: {src}')

        plan = plan_file(src, show, settings, out_dir)
        # Claimed before the first await so concurrent jobs see it
        output_path = reserve_output_path(plan['output_path'])
    except RadioIngestError as e:
        logger.error('Failed to process file %s: %s', src.name, e)
        return failed_result(str(e))

    try:
        result = await processor.process_audio(src, output_path, plan['options'], plan['needs_processing'])
    except (Exception, asyncio.CancelledError):
        remove_partial_output(output_path)
        raise

    if result.success:
        logger.info('File successfully processed: %s -> %s', src.name, result.output_path)
    else:
        remove_partial_output(output_path)
    return result


def failed_result(error: str) -> ProcessingResult:
    """Result for a job that failed before processing started"""
    return ProcessingResult(success=False, state=JobState.FAILED, error=error,
                            history=[JobState.IDLE, JobState.FAILED])
