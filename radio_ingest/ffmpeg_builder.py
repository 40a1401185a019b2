"""
FFmpeg filter chain and command building for audio processing
"""

import logging
from pathlib import Path
from typing import List

from .errors import InvalidTrimWindow
from .models import FilterChain, ProbeInfo, ProcessingOptions

logger = logging.getLogger(__name__)

NORMALIZATION_MIN_DB = -70.0
NORMALIZATION_MAX_DB = -5.0
DEFAULT_FADE_SECONDS = 0.5

# Resolved metadata field -> ffmpeg tag name
METADATA_TAGS = (
    ('title', 'title'),
    ('artist', 'artist'),
    ('album', 'album'),
    ('genre', 'genre'),
    ('year', 'date'),
    ('comment', 'comment'),
)


def format_seconds(value: float) -> str:
    """Format a number for ffmpeg filter arguments: 10.0 -> '10', 2.50 -> '2.5'"""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f'{value:.3f}'.rstrip('0').rstrip('.')


def clamp_normalization(level: float) -> float:
    """Clamp a loudness target into the range loudnorm accepts"""
    return max(NORMALIZATION_MIN_DB, min(NORMALIZATION_MAX_DB, level))


def build_trim_filters(options: ProcessingOptions, duration: float, chain: FilterChain,
                       source: str = '') -> float:
    """Append the trim directive if the window fits; return the resulting output duration"""
    start = options.trim_start or 0
    end = options.trim_end if options.trim_end is not None else duration
    trim_duration = end - start

    logger.debug('Trim settings - start: %ss, end: %ss, duration: %ss, trimDuration: %ss',
                 start, end, duration, trim_duration)

    if trim_duration > 0 and start < duration and end <= duration:
        chain.filters.append(f'atrim=start={format_seconds(start)}:duration={format_seconds(trim_duration)}')
        # Restart timestamps at zero so later fades line up with the trimmed audio
        chain.filters.append('asetpts=PTS-STARTPTS')
        logger.info('Applied trim: start=%ss, duration=%ss (end=%ss)', start, trim_duration, end)
        return trim_duration

    warning = str(InvalidTrimWindow(start, end, duration))
    chain.warnings.append(warning)
    logger.warning('%s%s, trim skipped', f'{source}: ' if source else '', warning)
    return duration


def build_filter_chain(options: ProcessingOptions, probe: ProbeInfo,
                       fade_in_duration: float = DEFAULT_FADE_SECONDS,
                       fade_out_duration: float = DEFAULT_FADE_SECONDS,
                       source: str = '') -> FilterChain:
    """Build the ordered filter chain: trim -> normalize -> fade-in -> fade-out"""
    chain = FilterChain()
    output_duration = probe.duration

    if options.trim_start is not None or options.trim_end is not None:
        output_duration = build_trim_filters(options, probe.duration, chain, source)

    if options.normalization_level is not None:
        level = clamp_normalization(options.normalization_level)
        if level != options.normalization_level:
            logger.debug('Normalization level %s clamped to %s', options.normalization_level, level)
        chain.filters.append(f'loudnorm=I={format_seconds(level)}')

    if options.fade_in:
        chain.filters.append(f'afade=t=in:st=0:d={format_seconds(fade_in_duration)}')
    if options.fade_out:
        fade_start = max(0.0, output_duration - fade_out_duration)
        chain.filters.append(
            f'afade=t=out:st={format_seconds(fade_start)}:d={format_seconds(fade_out_duration)}')

    # Output format and quality
    if options.output_format == 'mp3':
        chain.codec_args.extend(['-codec:a', 'libmp3lame'])
        if options.bit_rate:
            chain.codec_args.extend(['-b:a', f'{options.bit_rate}k'])
    elif options.output_format == 'wav':
        chain.codec_args.extend(['-codec:a', 'pcm_s16le'])

    if options.sample_rate:
        chain.sample_rate_args.extend(['-ar', str(options.sample_rate)])

    for field, tag in METADATA_TAGS:
        value = options.metadata.get(field)
        if value:
            chain.metadata_args.extend(['-metadata', f'{tag}={value}'])

    chain.output_duration = output_duration
    return chain


def build_ffmpeg_cmd(ffmpeg_path: str, inp: Path, out: Path, chain: FilterChain) -> List[str]:
    """Build the full transcoder invocation for a filter chain"""
    base = [ffmpeg_path, '-hide_banner', '-loglevel', 'warning', '-i', str(inp)]
    return base + chain.to_args() + ['-y', str(out)]
