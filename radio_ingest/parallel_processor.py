"""
Parallel planning (dask) and concurrent processing (asyncio) of show files
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

import dask
from dask import delayed
from dask.diagnostics import ProgressBar
from dask.distributed import Client

from .config import Settings
from .ffmpeg_runner import FFprobeProber
from .models import BatchProcessingStats, ProcessingResult, ShowProfile
from .patterns import find_matching_pattern
from .plan_report import plan_to_row
from .processor import AudioProcessor, describe_command, failed_result, plan_file, process_file
from .rich_console import rich_output

logger = logging.getLogger(__name__)


class ParallelProcessor:
    """Plans batches with dask and runs jobs under an asyncio concurrency limit"""

    def __init__(self, settings: Settings, max_workers: Optional[int] = None,
                 use_distributed: bool = False):
        self.settings = settings
        self.max_workers = max_workers or settings.max_concurrent_jobs
        self.use_distributed = use_distributed
        self.client: Optional[Client] = None

        if use_distributed:
            try:
                self.client = Client(processes=True, n_workers=self.max_workers,
                                     threads_per_worker=1, memory_limit='2GB')
                rich_output.print_info(f"Dask distributed client started with {self.max_workers} workers")
            except Exception as e:
                rich_output.print_warning(f"Failed to start distributed client: {e}")
                rich_output.print_info("Falling back to local threaded planning")
                self.use_distributed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            self.client.close()

    def collect_files(self, root: Path, show: ShowProfile) -> List[Path]:
        """Collect audio files under root that match one of the show's patterns"""
        extensions = set(self.settings.extensions)
        if root.is_file():
            candidates = [root]
        else:
            candidates = [p for p in root.rglob('*') if p.is_file()]

        files = []
        for path in candidates:
            if path.suffix.lower() not in extensions:
                continue
            if show.file_patterns and not find_matching_pattern(path.name, show.file_patterns, None):
                logger.debug("File %s doesn't match any pattern for show %s", path.name, show.name)
                continue
            files.append(path)
        return sorted(files)

    def plan_files_parallel(self, file_paths: List[Path], show: ShowProfile,
                            out_dir: Optional[Path] = None) -> List[dict]:
        """Probe and plan multiple files in parallel, returning report rows"""
        if not file_paths:
            return []

        rich_output.print_info(f"Planning {len(file_paths)} files in parallel...")
        tasks = [delayed(self._plan_single_file)(path, show, self.settings, out_dir)
                 for path in file_paths]

        if self.use_distributed and self.client:
            results = self.client.gather(self.client.compute(tasks))
        else:
            with ProgressBar():
                results = dask.compute(*tasks, scheduler='threads', num_workers=self.max_workers)

        return list(results)

    @staticmethod
    def _plan_single_file(path: Path, show: ShowProfile, settings: Settings,
                          out_dir: Optional[Path]) -> dict:
        """Plan a single file (static method for dask workers)"""
        plan = plan_file(path, show, settings, out_dir)
        prober = FFprobeProber(settings.ffprobe_path, settings.probe_timeout, settings.fallback_duration)
        # Each worker thread runs its own event loop
        probe = asyncio.run(prober.probe(path))
        chain, command = describe_command(plan, settings, probe)
        return plan_to_row(plan, probe, chain, command)

    async def process_batch(self, file_paths: List[Path], show: ShowProfile,
                            processor: AudioProcessor, out_dir: Optional[Path] = None,
                            on_result: Optional[Callable[[Path, ProcessingResult], None]] = None
                            ) -> BatchProcessingStats:
        """Process files concurrently; one failing file never stops the others"""
        stats = BatchProcessingStats(total_files=len(file_paths), start_time=datetime.now())
        if not file_paths:
            stats.end_time = datetime.now()
            return stats

        rich_output.print_info(f"Processing {len(file_paths)} files with {self.max_workers} workers...")
        semaphore = asyncio.Semaphore(self.max_workers)

        async def run_one(path: Path):
            async with semaphore:
                try:
                    result = await process_file(path, show, processor, self.settings, out_dir)
                except Exception as e:
                    logger.exception('Unexpected error processing %s', path.name)
                    result = failed_result(f'Unexpected error: {e}')
                return path, result

        progress = rich_output.create_batch_progress()
        with progress:
            task_id = progress.add_task("Processing files...", total=len(file_paths))
            for next_done in asyncio.as_completed([run_one(p) for p in file_paths]):
                path, result = await next_done
                stats.add_result(result)
                if on_result:
                    on_result(path, result)
                progress.update(task_id, advance=1)

        stats.end_time = datetime.now()
        return stats
