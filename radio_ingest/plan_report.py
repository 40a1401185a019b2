"""
CSV plan reports for batch processing
"""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

FIELDNAMES = [
    'file_path', 'file_name', 'pattern', 'matched', 'confidence', 'extracted_data',
    'needs_processing', 'output_format', 'output_path', 'probed_duration', 'probe_fallback',
    'warnings', 'command', 'analysis_date', 'processed', 'processing_date'
]


def plan_to_row(plan: dict, probe, chain, command: List[str]) -> dict:
    """Flatten a file plan plus its probe result into a report row"""
    extraction = plan['extraction']
    matched = bool(extraction and extraction.success)
    return {
        'file_path': str(plan['source']),
        'file_name': plan['source'].name,
        'pattern': plan['pattern'] or '',
        'matched': 'True' if matched else 'False',
        'confidence': extraction.confidence if extraction else 0,
        'extracted_data': json.dumps(extraction.data if matched else {}, sort_keys=True),
        'needs_processing': 'True' if plan['needs_processing'] else 'False',
        'output_format': plan['options'].output_format,
        'output_path': str(plan['output_path']),
        'probed_duration': probe.duration,
        'probe_fallback': 'True' if probe.fallback_used else 'False',
        'warnings': '; '.join(chain.warnings) if chain else '',
        'command': ' '.join(command),
        'analysis_date': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'processed': 'False',
        'processing_date': '',
    }


def read_plan_csv(csv_path: Path) -> List[dict]:
    """Read a plan report and convert columns back to proper types"""
    if not csv_path.exists():
        raise FileNotFoundError(f"Plan report not found: {csv_path}")

    rows = []
    with open(csv_path, 'r', newline='', encoding='utf-8') as csvfile:
        reader = csv.DictReader(csvfile)
        for row in reader:
            row['confidence'] = int(row['confidence']) if row['confidence'] else 0
            row['probed_duration'] = float(row['probed_duration']) if row['probed_duration'] else 0.0
            row['extracted_data'] = json.loads(row['extracted_data'] or '{}')
            row['matched'] = row['matched'].lower() == 'true'
            row['needs_processing'] = row['needs_processing'].lower() == 'true'
            row['probe_fallback'] = row['probe_fallback'].lower() == 'true'
            row['processed'] = row.get('processed', 'false').lower() == 'true'
            rows.append(row)
    return rows


def _serialize(row: dict) -> dict:
    out = dict(row)
    if isinstance(out.get('extracted_data'), dict):
        out['extracted_data'] = json.dumps(out['extracted_data'], sort_keys=True)
    for key in ('matched', 'needs_processing', 'probe_fallback', 'processed'):
        if isinstance(out.get(key), bool):
            out[key] = 'True' if out[key] else 'False'
    return out


def write_plan_csv(rows: List[dict], csv_path: Path):
    """Write plan rows to a CSV file"""
    if not rows:
        logger.warning('No files to write to plan report %s', csv_path)
        return

    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with open(csv_path, 'w', newline='', encoding='utf-8') as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=FIELDNAMES)
        writer.writeheader()
        writer.writerows(_serialize(row) for row in rows)

    to_process = sum(1 for row in rows if row['needs_processing'] in (True, 'True'))
    logger.info('Plan saved to %s: %d files, %d need processing', csv_path, len(rows), to_process)


def update_plan_entry(csv_path: Path, file_path: str, processed: bool = True, processing_date: str = None):
    """Mark a single report row as processed"""
    if not csv_path.exists():
        return

    rows = read_plan_csv(csv_path)
    updated = False
    for row in rows:
        if row['file_path'] == file_path:
            row['processed'] = processed
            row['processing_date'] = processing_date or datetime.now().strftime('%Y-%m-%d %H:%M:%S')
            updated = True
            break

    if updated:
        write_plan_csv(rows, csv_path)
