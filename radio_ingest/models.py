"""
Pydantic models for show profiles, processing options and job results
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Dict, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .patterns import compile_pattern


class JobState(Enum):
    IDLE = "idle"
    PROBING = "probing"
    BUILDING_FILTERS = "building_filters"
    TRANSCODING = "transcoding"
    DIRECT_COPY = "direct_copy"  # pass-through, no transformation requested
    FALLBACK_COPY = "fallback_copy"  # transcode failed, copying the original
    DONE = "done"
    FAILED = "failed"


class ExtractionResult(BaseModel):
    """Result of matching a filename against a compiled pattern"""
    success: bool
    data: Dict[str, Union[int, str]] = Field(default_factory=dict)
    confidence: int = Field(default=0, ge=0, le=100)

    @model_validator(mode='after')
    def check_confidence(self):
        if self.success and self.confidence == 0:
            raise ValueError('Successful extraction must have a non-zero confidence')
        if not self.success and self.confidence != 0:
            raise ValueError('Failed extraction must have zero confidence')
        return self


class ExtractedDate(BaseModel):
    """Broadcast date derived from filename placeholders"""
    year: int
    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)


class TrimSettings(BaseModel):
    """Absolute trim points and fade flags of a show"""
    model_config = ConfigDict(extra='forbid')

    start_seconds: float = Field(default=0, ge=0)
    end_seconds: float = Field(default=0, ge=0)
    fade_in: bool = False
    fade_out: bool = False


class AudioSettings(BaseModel):
    """Audio output settings of a show.

    output_format: container/codec name; 'mp3' selects libmp3lame, 'wav'
        16-bit PCM, anything else is left to ffmpeg's defaults.
    normalization_level: target integrated loudness in dB, clamped to
        [-70, -5] when the filter chain is built.
    sample_rate: resample target in Hz, only applied when set.
    bit_rate: mp3 bitrate in kbit/s, only applied when set.
    """
    model_config = ConfigDict(extra='forbid')

    output_format: str = 'wav'
    normalization_level: Optional[float] = None
    sample_rate: Optional[int] = None
    bit_rate: Optional[int] = None

    @field_validator('output_format')
    @classmethod
    def normalize_format(cls, v):
        v = v.strip().lower().lstrip('.')
        if not v:
            raise ValueError('Output format must not be empty')
        return v

    @field_validator('sample_rate', 'bit_rate')
    @classmethod
    def validate_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError('Must be positive')
        return v


class MetadataTemplates(BaseModel):
    """Per-field tag templates, e.g. '{showName} {YYYY}-{MM}-{DD}'"""
    model_config = ConfigDict(extra='forbid')

    title: str = ''
    artist: str = ''
    album: str = ''
    genre: str = ''
    year: str = ''
    comment: str = ''


class FilePattern(BaseModel):
    """Placeholder pattern that selects and parses incoming files"""
    model_config = ConfigDict(extra='forbid')

    pattern: str
    type: str = 'watch'
    watch_path: Optional[Path] = None

    @field_validator('pattern')
    @classmethod
    def validate_pattern(cls, v):
        # InvalidPattern is a ValueError, so pydantic reports it with the field
        compile_pattern(v)
        return v

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if v not in ('watch', 'ftp'):
            raise ValueError('Pattern type must be one of: watch, ftp')
        return v


class FileNamingRules(BaseModel):
    model_config = ConfigDict(extra='forbid')

    output_pattern: Optional[str] = None


class ShowProfile(BaseModel):
    """Declarative description of how a show's files are processed"""
    model_config = ConfigDict(extra='forbid')

    name: str
    id: Optional[str] = None
    enabled: bool = True
    file_patterns: List[FilePattern] = Field(default_factory=list)
    output_directory: Optional[Path] = None
    trim_settings: TrimSettings = Field(default_factory=TrimSettings)
    audio_settings: AudioSettings = Field(default_factory=AudioSettings)
    metadata: MetadataTemplates = Field(default_factory=MetadataTemplates)
    file_naming: FileNamingRules = Field(default_factory=FileNamingRules)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Show name must not be empty')
        return v


class ProcessingOptions(BaseModel):
    """Normalized options for a single file, resolved from its show profile"""
    trim_start: Optional[float] = None
    trim_end: Optional[float] = None
    output_format: str = 'wav'
    normalization_level: Optional[float] = None
    sample_rate: Optional[int] = None
    bit_rate: Optional[int] = None
    fade_in: bool = False
    fade_out: bool = False
    metadata: Dict[str, str] = Field(default_factory=dict)
    extracted_date: Optional[ExtractedDate] = None


class ProbeInfo(BaseModel):
    """Input file information reported by the prober"""
    duration: float
    format_name: Optional[str] = None
    stream_count: int = 0
    fallback_used: bool = False


class FilterChain(BaseModel):
    """Ordered audio filters plus the trailing encoder arguments"""
    filters: List[str] = Field(default_factory=list)
    codec_args: List[str] = Field(default_factory=list)
    sample_rate_args: List[str] = Field(default_factory=list)
    metadata_args: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    output_duration: float = 0

    @property
    def filter_args(self) -> List[str]:
        if not self.filters:
            return []
        return ['-af', ','.join(self.filters)]

    def to_args(self) -> List[str]:
        return self.filter_args + self.codec_args + self.sample_rate_args + self.metadata_args


class ProcessingResult(BaseModel):
    """Terminal outcome of one job, handed to the queue/store"""
    success: bool
    output_path: Optional[Path] = None
    error: Optional[str] = None
    original_duration: float = 0
    processed_duration: float = 0
    used_fallback: bool = False
    transcoded: bool = False
    state: JobState = JobState.DONE
    warnings: List[str] = Field(default_factory=list)
    history: List[JobState] = Field(default_factory=list)
    processing_time: Optional[float] = None

    @field_validator('state')
    @classmethod
    def validate_terminal(cls, v):
        if v not in (JobState.DONE, JobState.FAILED):
            raise ValueError('Result state must be terminal (done or failed)')
        return v

    @field_validator('processing_time')
    @classmethod
    def validate_processing_time(cls, v):
        if v is not None and v < 0:
            raise ValueError('Processing time must be non-negative')
        return v


class BatchProcessingStats(BaseModel):
    """Statistics for batch processing operation"""
    total_files: int = 0
    processed_files: int = 0
    transcoded_files: int = 0
    copied_files: int = 0
    fallback_files: int = 0
    failed_files: int = 0
    skipped_files: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def processing_duration(self) -> Optional[float]:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def add_result(self, result: Optional[ProcessingResult]):
        """Add a job result to the statistics; None means the file was skipped"""
        if result is None:
            self.skipped_files += 1
        elif not result.success:
            self.failed_files += 1
        elif result.used_fallback:
            self.fallback_files += 1
        elif result.transcoded:
            self.transcoded_files += 1
        else:
            self.copied_files += 1

        self.processed_files += 1
