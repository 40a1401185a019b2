"""
Radio ingest library modules

Filename pattern extraction, metadata templating and ffmpeg audio processing
for incoming radio show files.
"""

# Import all public interfaces for easy access
from .errors import (
    RadioIngestError, InvalidPattern, ProfileError, ProbeUnavailable,
    InvalidTrimWindow, TranscodeFailure, CopyFailure,
)
from .models import (
    JobState, ExtractionResult, ExtractedDate, ShowProfile, ProcessingOptions,
    ProbeInfo, FilterChain, ProcessingResult, BatchProcessingStats,
)
from .patterns import PLACEHOLDERS, compile_pattern, validate_pattern, matches_pattern, find_matching_pattern
from .extractor import extract_data_from_filename, extract_from_path, extract_date, preview_pattern
from .metadata_templater import process_metadata_template, resolve_metadata
from .options import create_processing_options, needs_processing, resolve_processing_options
from .ffmpeg_builder import build_filter_chain, build_ffmpeg_cmd
from .ffmpeg_runner import run, FFprobeProber, FFmpegTranscoder, check_ffmpeg_availability
from .config import Settings, load_show_profile
from .plan_report import read_plan_csv, write_plan_csv, update_plan_entry
from .processor import AudioProcessor, create_audio_processor, plan_file, process_file
from .file_utils import format_file_size, sanitize_filename, generate_output_filename

__all__ = [
    'RadioIngestError', 'InvalidPattern', 'ProfileError', 'ProbeUnavailable',
    'InvalidTrimWindow', 'TranscodeFailure', 'CopyFailure',
    'JobState', 'ExtractionResult', 'ExtractedDate', 'ShowProfile', 'ProcessingOptions',
    'ProbeInfo', 'FilterChain', 'ProcessingResult', 'BatchProcessingStats',
    'PLACEHOLDERS', 'compile_pattern', 'validate_pattern', 'matches_pattern', 'find_matching_pattern',
    'extract_data_from_filename', 'extract_from_path', 'extract_date', 'preview_pattern',
    'process_metadata_template', 'resolve_metadata',
    'create_processing_options', 'needs_processing', 'resolve_processing_options',
    'build_filter_chain', 'build_ffmpeg_cmd',
    'run', 'FFprobeProber', 'FFmpegTranscoder', 'check_ffmpeg_availability',
    'Settings', 'load_show_profile',
    'read_plan_csv', 'write_plan_csv', 'update_plan_entry',
    'AudioProcessor', 'create_audio_processor', 'plan_file', 'process_file',
    'format_file_size', 'sanitize_filename', 'generate_output_filename',
]
