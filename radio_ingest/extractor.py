"""
Filename data extraction using compiled placeholder patterns
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from .errors import InvalidPattern
from .models import ExtractedDate, ExtractionResult
from .patterns import CompiledPattern, compile_pattern

logger = logging.getLogger(__name__)

# Day of week abbreviations and full names mapped to canonical names
DAY_MAPPINGS = {
    'mon': 'Monday', 'monday': 'Monday',
    'tue': 'Tuesday', 'tues': 'Tuesday', 'tuesday': 'Tuesday',
    'wed': 'Wednesday', 'wednesday': 'Wednesday',
    'thu': 'Thursday', 'thur': 'Thursday', 'thurs': 'Thursday', 'thursday': 'Thursday',
    'fri': 'Friday', 'friday': 'Friday',
    'sat': 'Saturday', 'saturday': 'Saturday',
    'sun': 'Sunday', 'sunday': 'Sunday',
}

YEAR_CENTURY_CUTOFF = 50


def normalize_extracted_value(key: str, value: str) -> Union[int, str]:
    """Normalize a captured value according to its placeholder"""
    if key == 'DOTW':
        return DAY_MAPPINGS.get(value.lower(), value)
    if key in ('YYYY', 'YY', 'MM', 'DD'):
        return int(value)
    return value


def expand_two_digit_year(year: int) -> int:
    """24 -> 2024, 76 -> 1976"""
    return 2000 + year if year < YEAR_CENTURY_CUTOFF else 1900 + year


def extract_data_from_filename(filename: str, compiled: CompiledPattern) -> ExtractionResult:
    """Match a filename against a compiled pattern and normalize the captured fields.

    YY is kept as the captured two-digit number; extract_date applies the
    century rule through expand_two_digit_year.
    """
    match = compiled.regex.match(filename)
    if not match or not filename:
        return ExtractionResult(success=False)

    data = {}
    for key, value in zip(compiled.placeholder_keys, match.groups()):
        if value:
            data[key] = normalize_extracted_value(key, value)

    matched_length = match.end() - match.start()
    confidence = round(matched_length / len(filename) * 100)
    return ExtractionResult(success=True, data=data, confidence=confidence)


def extract_from_path(path: Path, compiled: CompiledPattern) -> ExtractionResult:
    """Extract from a file's name, falling back to the name without its extension"""
    result = extract_data_from_filename(path.name, compiled)
    if not result.success and path.suffix:
        result = extract_data_from_filename(path.stem, compiled)
    return result


def extract_date(result: Optional[ExtractionResult]) -> Optional[ExtractedDate]:
    """Build the broadcast date from YYYY/YY, MM and DD if all were extracted"""
    if not result or not result.success:
        return None

    data = result.data
    if 'YYYY' in data:
        year = data['YYYY']
    elif 'YY' in data:
        year = expand_two_digit_year(data['YY'])
    else:
        return None
    if 'MM' not in data or 'DD' not in data:
        return None

    try:
        date = ExtractedDate(year=year, month=data['MM'], day=data['DD'])
    except ValidationError:
        logger.warning('Extracted date out of range: %s-%s-%s', year, data['MM'], data['DD'])
        return None

    logger.debug('Extracted date from filename: %04d-%02d-%02d', date.year, date.month, date.day)
    return date


def preview_pattern(pattern: str, filenames: List[str]) -> List[dict]:
    """Test a pattern against multiple filenames"""
    try:
        compiled = compile_pattern(pattern)
    except InvalidPattern as e:
        return [{'filename': name, 'matches': False, 'extracted_data': {},
                 'confidence': 0, 'errors': [str(e)]} for name in filenames]

    rows = []
    for name in filenames:
        result = extract_from_path(Path(name), compiled)
        rows.append({
            'filename': name,
            'matches': result.success,
            'extracted_data': result.data,
            'confidence': result.confidence,
            'errors': [],
        })
    return rows

