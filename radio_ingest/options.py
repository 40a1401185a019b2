"""
Processing option resolution and pass-through decision
"""

from datetime import date
from typing import Optional, Tuple

from .metadata_templater import resolve_metadata
from .models import ExtractedDate, ProcessingOptions, ShowProfile

PASS_THROUGH_FORMAT = 'wav'


def create_processing_options(show: ShowProfile, extracted_date: Optional[ExtractedDate] = None,
                              today: Optional[date] = None) -> ProcessingOptions:
    """Merge a show's trim, audio and metadata settings into per-file options"""
    trim = show.trim_settings
    audio = show.audio_settings

    return ProcessingOptions(
        # A trim point of 0 means "not set"
        trim_start=trim.start_seconds if trim.start_seconds > 0 else None,
        trim_end=trim.end_seconds if trim.end_seconds > 0 else None,
        fade_in=trim.fade_in,
        fade_out=trim.fade_out,
        output_format=audio.output_format,
        normalization_level=audio.normalization_level,
        sample_rate=audio.sample_rate,
        bit_rate=audio.bit_rate,
        metadata=resolve_metadata(show.metadata, show.name, extracted_date, today),
        extracted_date=extracted_date,
    )


def needs_processing(options: ProcessingOptions) -> bool:
    """Decide whether the file must go through the transcoder.

    Without any requested edit the original is copied byte for byte.
    """
    return (
        options.trim_start is not None
        or options.trim_end is not None
        or options.output_format != PASS_THROUGH_FORMAT
        or options.normalization_level is not None
        or options.fade_in
        or options.fade_out
    )


def resolve_processing_options(show: ShowProfile, extracted_date: Optional[ExtractedDate] = None,
                               today: Optional[date] = None) -> Tuple[ProcessingOptions, bool]:
    options = create_processing_options(show, extracted_date, today)
    return options, needs_processing(options)
