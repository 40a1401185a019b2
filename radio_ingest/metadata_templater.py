"""
Metadata tag templating
"""

import re
from datetime import date
from typing import Dict, Optional

from .models import ExtractedDate, MetadataTemplates

METADATA_FIELDS = ('title', 'artist', 'album', 'genre', 'year', 'comment')

_YEAR_RE = re.compile(r'\{YYYY\}', re.IGNORECASE)
_MONTH_RE = re.compile(r'\{MM\}', re.IGNORECASE)
_DAY_RE = re.compile(r'\{DD\}', re.IGNORECASE)
_SHOW_NAME_RE = re.compile(r'\{showName\}', re.IGNORECASE)
_LEFTOVER_RE = re.compile(r'\{[^}]+\}')


def process_metadata_template(template: str, show_name: Optional[str] = None,
                              extracted_date: Optional[ExtractedDate] = None,
                              today: Optional[date] = None) -> str:
    """Resolve date and show name placeholders, dropping anything unresolved.

    The extracted broadcast date wins over today's date. Order matters:
    date and show name are substituted before leftover tokens are stripped.
    """
    if not template:
        return ''

    if extracted_date:
        year, month, day = extracted_date.year, extracted_date.month, extracted_date.day
    else:
        today = today or date.today()
        year, month, day = today.year, today.month, today.day

    # Lambdas keep backslashes in values from being read as group references
    result = _YEAR_RE.sub(lambda m: f'{year:04d}', template)
    result = _MONTH_RE.sub(lambda m: f'{month:02d}', result)
    result = _DAY_RE.sub(lambda m: f'{day:02d}', result)
    result = _SHOW_NAME_RE.sub(lambda m: show_name or '', result)

    return _LEFTOVER_RE.sub('', result).strip()


def resolve_metadata(templates: MetadataTemplates, show_name: Optional[str] = None,
                     extracted_date: Optional[ExtractedDate] = None,
                     today: Optional[date] = None) -> Dict[str, str]:
    """Resolve every metadata field of a show"""
    return {
        field: process_metadata_template(getattr(templates, field), show_name, extracted_date, today)
        for field in METADATA_FIELDS
    }
