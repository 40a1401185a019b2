"""
File handling utilities and output path operations
"""

import logging
import re
import shutil
from datetime import date
from pathlib import Path
from typing import Optional

from .errors import CopyFailure
from .metadata_templater import process_metadata_template
from .models import ExtractedDate, ShowProfile

logger = logging.getLogger(__name__)

MAX_CONFLICT_ATTEMPTS = 1000

_ORIGINAL_NAME_RE = re.compile(r'\{originalFilename\}', re.IGNORECASE)


def format_file_size(size_bytes):
    """Convert bytes to human readable format"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} TB"


def sanitize_filename(filename: str) -> str:
    """Replace characters that are invalid on common filesystems"""
    name = re.sub(r'[<>:"/\\|?*]', '_', filename)
    name = re.sub(r'\s+', '_', name)
    name = re.sub(r'_+', '_', name)
    return name.strip()


def generate_output_filename(original_filename: str, show: ShowProfile,
                             extracted_date: Optional[ExtractedDate] = None,
                             extension: Optional[str] = None,
                             today: Optional[date] = None) -> str:
    """Build the output filename from the show's naming rules"""
    if extension is None:
        extension = '.' + show.audio_settings.output_format
    stem = Path(original_filename).stem

    pattern = show.file_naming.output_pattern
    if pattern:
        name = _ORIGINAL_NAME_RE.sub(lambda m: stem, pattern)
        name = sanitize_filename(process_metadata_template(name, show.name, extracted_date, today))
    else:
        name = sanitize_filename(show.name)

    if not name.strip('_'):
        name = sanitize_filename(stem)
    return f'{name}{extension}'


def reserve_output_path(path: Path) -> Path:
    """Claim path, or path with a _N suffix if taken, by creating it empty.

    Creation is exclusive, so concurrent jobs never get the same path.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CopyFailure(f'Cannot create output directory {path.parent}: {e}')

    candidate = path
    for counter in range(1, MAX_CONFLICT_ATTEMPTS + 1):
        try:
            with open(candidate, 'x'):
                pass
        except FileExistsError:
            candidate = path.with_name(f'{path.stem}_{counter}{path.suffix}')
            continue
        except OSError as e:
            raise CopyFailure(f'Cannot create output file {candidate}: {e}')
        if candidate != path:
            logger.info('File conflict resolved: %s -> %s', path, candidate)
        return candidate
    raise CopyFailure(f'Too many file conflicts, unable to resolve {path}')


def copy_file(src: Path, dst: Path) -> Path:
    """Copy src to dst, creating parent directories and overwriting dst"""
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dst)
    except OSError as e:
        raise CopyFailure(f'File copy failed: {e}')
    logger.debug('File copy completed: %s -> %s', src, dst)
    return dst


def remove_partial_output(path: Path):
    """Remove a partially written output file, logging instead of raising"""
    try:
        if path.exists():
            path.unlink()
            logger.info('Removed partial output: %s', path.name)
    except OSError as e:
        logger.warning('Could not remove partial output %s: %s', path, e)
