"""
Placeholder pattern compilation

A pattern such as "{SHOW}_{YYYY}_{MM}_{DD}" is split into literal and
placeholder tokens in one pass, then assembled into an anchored regex whose
capture groups follow the order in which placeholders occur.
"""

import logging
import re
from functools import lru_cache
from pathlib import PurePath
from typing import Iterable, List, NamedTuple, Optional, Tuple

from .errors import InvalidPattern

logger = logging.getLogger(__name__)


class PlaceholderSpec(NamedTuple):
    key: str
    regex: str
    description: str
    examples: Tuple[str, ...]


class PatternToken(NamedTuple):
    text: str
    key: Optional[str] = None  # None for literal text

    @property
    def is_placeholder(self) -> bool:
        return self.key is not None


class CompiledPattern(NamedTuple):
    source: str
    regex: 're.Pattern'
    placeholder_keys: Tuple[str, ...]
    case_insensitive: bool


_TEXT_FIELD = r'([^_\-\s.]+)'

PLACEHOLDERS = (
    PlaceholderSpec('YYYY', r'(\d{4})', '4-digit year', ('2024', '2023', '2025')),
    PlaceholderSpec('YY', r'(\d{2})', '2-digit year', ('24', '23', '25')),
    PlaceholderSpec('MM', r'(\d{1,2})', 'Month (1-12)', ('01', '1', '12')),
    PlaceholderSpec('DD', r'(\d{1,2})', 'Day (1-31)', ('01', '1', '31')),
    PlaceholderSpec(
        'DOTW',
        r'(monday|tuesday|wednesday|thursday|friday|saturday|sunday'
        r'|tues|thurs|thur|mon|tue|wed|thu|fri|sat|sun)',
        'Day of the week (full or abbreviated)',
        ('Mon', 'Monday', 'tue', 'Wednesday'),
    ),
    PlaceholderSpec('SHOW', r'([^_\-\s]+)', 'Show name', ('MorningShow', 'News', 'Sports')),
    PlaceholderSpec('EPISODE', _TEXT_FIELD, 'Episode identifier', ('E001', 'Episode1', 'Part2')),
    PlaceholderSpec('SEGMENT', _TEXT_FIELD, 'Segment name', ('Weather', 'Sports', 'Interview')),
    PlaceholderSpec('TIME', r'(\d{1,2}[:\-]\d{2}(?:[:\-]\d{2})?)', 'Time (HH:MM or HH:MM:SS)',
                    ('08:30', '14:45:30', '9:15')),
    PlaceholderSpec('ANY', _TEXT_FIELD, 'Any text without separators', ('anything', 'text123')),
)

PLACEHOLDER_MAP = {spec.key: spec for spec in PLACEHOLDERS}

_TOKEN_RE = re.compile(r'\{([^{}]*)\}')


def tokenize_pattern(pattern: str) -> List[PatternToken]:
    """Split a pattern into literal and placeholder tokens"""
    tokens = []
    pos = 0
    for match in _TOKEN_RE.finditer(pattern):
        if match.start() > pos:
            tokens.append(PatternToken(pattern[pos:match.start()]))
        key = match.group(1).strip().upper()
        if key not in PLACEHOLDER_MAP:
            raise InvalidPattern(match.group(0), pattern)
        tokens.append(PatternToken(match.group(0), key))
        pos = match.end()
    if pos < len(pattern):
        tokens.append(PatternToken(pattern[pos:]))
    return tokens


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile a placeholder pattern into an anchored regex"""
    parts = []
    keys = []
    for token in tokenize_pattern(pattern):
        if token.is_placeholder:
            parts.append(PLACEHOLDER_MAP[token.key].regex)
            keys.append(token.key)
        elif '*' in token.text:
            raise InvalidPattern('*', pattern,
                                 'Wildcards (*) are not supported, use a placeholder such as {ANY}')
        else:
            parts.append(re.escape(token.text))

    case_insensitive = 'DOTW' in keys
    flags = re.IGNORECASE if case_insensitive else 0
    # Fragments only use non-capturing groups internally, so groups == len(keys)
    regex = re.compile('^' + ''.join(parts) + '$', flags)
    return CompiledPattern(pattern, regex, tuple(keys), case_insensitive)


def validate_pattern(pattern: str) -> dict:
    """Check a pattern for errors and common pitfalls"""
    errors = []
    warnings = []

    if not pattern.strip():
        errors.append('Pattern cannot be empty')
        return {'valid': False, 'errors': errors, 'warnings': warnings}

    valid = ', '.join(f'{{{spec.key}}}' for spec in PLACEHOLDERS)
    for match in _TOKEN_RE.finditer(pattern):
        if match.group(1).strip().upper() not in PLACEHOLDER_MAP:
            errors.append(f'Unknown placeholder: {match.group(0)}. Valid placeholders: {valid}')

    if not _TOKEN_RE.search(pattern):
        warnings.append('Pattern has no placeholders - it will match literally')

    if '*' in pattern:
        errors.append('Wildcards (*) are not supported in extraction patterns. '
                      'Use placeholders like {ANY} instead.')

    return {'valid': not errors, 'errors': errors, 'warnings': warnings}


def matches_pattern(filename: str, pattern: str) -> bool:
    """Check whether a filename (or its stem) matches a pattern"""
    try:
        compiled = compile_pattern(pattern)
    except InvalidPattern as e:
        logger.error(str(e))
        return False

    stem = PurePath(filename).stem
    matched = any(compiled.regex.match(name) for name in (filename, stem))
    if matched:
        logger.debug('File "%s" matches pattern "%s"', filename, pattern)
    else:
        logger.debug('File "%s" does NOT match pattern "%s" (regex: %s)',
                     filename, pattern, compiled.regex.pattern)
    return matched


def find_matching_pattern(filename: str, patterns: Iterable, pattern_type: Optional[str] = 'watch'):
    """Return the first show file pattern matching the filename, or None"""
    for file_pattern in patterns:
        if pattern_type and file_pattern.type != pattern_type:
            continue
        if matches_pattern(filename, file_pattern.pattern):
            return file_pattern
    return None
