#!/usr/bin/env python3
"""
Radio show ingest processor

Matches incoming audio files against a show profile, extracts broadcast
dates from their names and trims, normalizes, fades, tags and converts them
with ffmpeg. Files that need no changes are copied as-is; a failed transcode
falls back to copying the original.

Usage:
  python main.py show.json /path/to/incoming [options]
  python main.py show.json /path/to/file.mp3 --dry-run --debug
  python main.py show.json /path/to/incoming --gather plan.csv
  python main.py show.json /path/to/incoming --use-report plan.csv --limit 10
  python main.py show.json --test-pattern Show_2024_01_15.mp3 other.mp3

Requires: ffmpeg, ffprobe in PATH (or RADIO_FFMPEG_PATH / RADIO_FFPROBE_PATH)
"""

import argparse
import asyncio
import sys
from pathlib import Path

from radio_ingest.config import Settings, load_show_profile
from radio_ingest.errors import ProfileError
from radio_ingest.extractor import preview_pattern
from radio_ingest.ffmpeg_runner import FFprobeProber, check_ffmpeg_availability
from radio_ingest.file_utils import format_file_size
from radio_ingest.logging_utils import configure_logging
from radio_ingest.parallel_processor import ParallelProcessor
from radio_ingest.patterns import validate_pattern
from radio_ingest.plan_report import read_plan_csv, update_plan_entry, write_plan_csv
from radio_ingest.processor import create_audio_processor, describe_command, plan_file
from radio_ingest.rich_console import rich_output


def parse_arguments():
    """Parse and validate command line arguments"""
    ap = argparse.ArgumentParser(description='Radio show ingest: pattern extraction and ffmpeg audio processing')
    ap.add_argument('profile', type=Path, help='Show profile (JSON)')
    ap.add_argument('root', type=Path, nargs='?', help='Root directory (recursive) or single audio file')
    ap.add_argument('--out', type=Path, default=None,
                    help='Output directory (default: the show\'s output directory)')

    # Operation modes
    ap.add_argument('--dry-run', action='store_true', help='Only show what would happen')
    ap.add_argument('--debug', action='store_true', help='Debug mode: probe files and show the ffmpeg command')
    ap.add_argument('--gather', '-g', type=Path, help='Gather mode: plan all files and save the plan to a CSV file')
    ap.add_argument('--use-report', type=Path, help='Process the unprocessed files of an existing plan report')
    ap.add_argument('--test-pattern', nargs='+', metavar='NAME',
                    help='Test the profile\'s file patterns against the given filenames')
    ap.add_argument('--limit', type=int, help='Only process the next N files')

    # Concurrency
    ap.add_argument('--jobs', '-j', type=int, help='Number of concurrent jobs (default: RADIO_MAX_CONCURRENT_JOBS)')
    ap.add_argument('--distributed', action='store_true', help='Use a dask distributed client for planning')

    # Logging
    ap.add_argument('--log-level', type=str, help='Log level (DEBUG, INFO, WARNING, ERROR)')
    ap.add_argument('--log-file', type=Path, help='Also write logs to this file')

    args = ap.parse_args()

    # Validate arguments
    if args.jobs is not None and args.jobs < 1:
        print('Error: --jobs must be at least 1', file=sys.stderr)
        sys.exit(2)
    if args.root is None and not args.test_pattern:
        print('Error: a root directory or file is required', file=sys.stderr)
        sys.exit(2)

    return args


def build_settings(args) -> Settings:
    """Merge command line overrides into environment settings"""
    overrides = {}
    if args.log_level:
        overrides['log_level'] = args.log_level
    elif args.debug:
        overrides['log_level'] = 'DEBUG'
    if args.log_file:
        overrides['log_file'] = args.log_file
    if args.jobs:
        overrides['max_concurrent_jobs'] = args.jobs
    return Settings(**overrides)


def run_pattern_tests(show, filenames):
    """Print extraction results of every profile pattern for the given filenames"""
    if not show.file_patterns:
        rich_output.print_warning(f"Show '{show.name}' has no file patterns")
        return
    for file_pattern in show.file_patterns:
        for warning in validate_pattern(file_pattern.pattern)['warnings']:
            rich_output.print_warning(f"{file_pattern.pattern}: {warning}")
        rich_output.print_pattern_tests(file_pattern.pattern, preview_pattern(file_pattern.pattern, filenames))


def apply_limit(files_list, limit, description="files"):
    """Apply limit to files list and print information"""
    if limit and limit > 0:
        files_list = files_list[:limit]
        rich_output.print_info(f"Limiting processing to {len(files_list)} {description} (--limit {limit})")
    return files_list


def files_from_report(rows):
    """Files of a plan report that still exist and were not processed yet"""
    files = []
    for entry in rows:
        file_path = Path(entry['file_path'])
        if not file_path.exists():
            continue
        if entry.get('processed', False):
            continue
        files.append(file_path)
    return files


def dry_run(files, show, settings, out_dir, debug):
    """Print the plan for each file without touching it"""
    prober = FFprobeProber(settings.ffprobe_path, settings.probe_timeout, settings.fallback_duration)
    for path in files:
        rich_output.print_file_path(path)
        plan = plan_file(path, show, settings, out_dir)
        command = None
        if debug and plan['needs_processing']:
            probe = asyncio.run(prober.probe(path))
            chain, command = describe_command(plan, settings, probe)
            for warning in chain.warnings:
                rich_output.print_warning(warning)
        rich_output.print_plan(plan, command)
        rich_output.print_info(f"Size: {format_file_size(path.stat().st_size)}")
    rich_output.print_skipped(f"Dry run: {len(files)} files planned, nothing written")


def main():
    args = parse_arguments()
    settings = build_settings(args)
    configure_logging(settings.log_level, settings.log_file)

    try:
        show = load_show_profile(args.profile)
    except ProfileError as e:
        rich_output.print_error('Cannot load show profile', str(e))
        sys.exit(2)

    if args.test_pattern:
        run_pattern_tests(show, args.test_pattern)
        return

    rich_output.print_header(f"Radio Ingest: {show.name}")
    if not show.enabled:
        rich_output.print_skipped(f"Show '{show.name}' is disabled")
        return

    root: Path = args.root
    if not root.exists():
        print(f'Path does not exist: {root}', file=sys.stderr)
        sys.exit(2)

    # Jobs still complete without ffmpeg by copying the originals
    if not args.dry_run and not asyncio.run(check_ffmpeg_availability(settings.ffmpeg_path)):
        rich_output.print_warning(f"ffmpeg not available at '{settings.ffmpeg_path}', "
                                  "files needing processing will be copied unchanged")

    out_dir = args.out.resolve() if args.out else None

    with ParallelProcessor(settings, args.jobs, args.distributed) as parallel:
        # Handle gather mode - plan files and export to CSV
        if args.gather:
            files = apply_limit(parallel.collect_files(root, show), args.limit)
            rows = parallel.plan_files_parallel(files, show, out_dir)
            write_plan_csv(rows, args.gather.resolve())
            rich_output.print_success(f"Plan saved to {args.gather.resolve()} ({len(rows)} files)")
            return

        report_path = None
        if args.use_report:
            report_path = args.use_report.resolve()
            try:
                rows = read_plan_csv(report_path)
            except FileNotFoundError:
                rich_output.print_info(f"Plan report not found, creating new one: {report_path}")
                rows = parallel.plan_files_parallel(parallel.collect_files(root, show), show, out_dir)
                write_plan_csv(rows, report_path)
            files = files_from_report(rows)
            rich_output.print_info(f"Plan report loaded: {len(rows)} files, {len(files)} left to process")
        else:
            files = parallel.collect_files(root, show)
            rich_output.print_info(f"Found {len(files)} matching audio files")

        files = apply_limit(files, args.limit)

        if args.dry_run:
            dry_run(files, show, settings, out_dir, args.debug)
            return

        def on_result(path, result):
            rich_output.print_result(result)
            if report_path and result.success:
                update_plan_entry(report_path, str(path))

        processor = create_audio_processor(settings)
        stats = asyncio.run(parallel.process_batch(files, show, processor, out_dir, on_result))

    rich_output.print_final_summary(stats)
    if stats.failed_files:
        sys.exit(1)


if __name__ == '__main__':
    main()
