"""
Rich console output and progress tracking
"""

from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.progress import (
    Progress, SpinnerColumn, TextColumn, BarColumn,
    TaskProgressColumn, TimeElapsedColumn
)
from rich.table import Table
from rich.panel import Panel
from rich import box

from .models import BatchProcessingStats, ProcessingResult

# Global console instance
console = Console()


class RichOutput:
    """Rich console output manager"""

    def __init__(self):
        self.console = console

    def print_header(self, title: str):
        """Print application header"""
        self.console.print(Panel.fit(
            f"[bold blue]{title}[/bold blue]",
            box=box.DOUBLE,
            border_style="blue"
        ))

    def print_file_path(self, path: Path):
        """Print file path being processed"""
        self.console.print(f"\n[bold cyan]Processing:[/bold cyan] {path}")

    def print_plan(self, plan: dict, command: Optional[List[str]] = None):
        """Print extraction and processing decisions for one file"""
        table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
        table.add_column("Property", style="cyan", width=20)
        table.add_column("Value", style="white")

        table.add_row("File Path", str(plan['source']))
        table.add_row("Pattern", plan['pattern'] or "[red]None[/red]")

        extraction = plan['extraction']
        if extraction and extraction.success:
            fields = ', '.join(f"{k}={v}" for k, v in extraction.data.items())
            table.add_row("Extracted", f"{fields or '-'} [dim]({extraction.confidence}%)[/dim]")
        else:
            table.add_row("Extracted", "[yellow]No match - using current date[/yellow]")

        date = plan['extracted_date']
        if date:
            table.add_row("Date", f"{date.year:04d}-{date.month:02d}-{date.day:02d}")

        options = plan['options']
        for field, value in options.metadata.items():
            if value:
                table.add_row(f"Tag: {field}", value)

        if plan['needs_processing']:
            table.add_row("Action", f"[orange3]Transcode to {options.output_format}[/orange3]")
        else:
            table.add_row("Action", "[green]✓ Pass-through copy[/green]")
        table.add_row("Output Path", str(plan['output_path']))

        self.console.print(table)

        if command:
            self.console.print(Panel(
                ' '.join(command),
                title="[bold yellow]FFmpeg Command[/bold yellow]",
                border_style="yellow"
            ))

    def print_result(self, result: ProcessingResult):
        """Print the outcome of a single job"""
        if not result.success:
            self.print_error("Processing failed", result.error)
        elif result.used_fallback:
            self.print_warning(f"Copied original as fallback: {result.output_path}")
            self.console.print(f"[yellow]Details: {result.error}[/yellow]")
        elif result.transcoded:
            self.print_success(f"Transcoded: {result.output_path}")
        else:
            self.print_success(f"Copied: {result.output_path}")

        for warning in result.warnings:
            self.print_warning(warning)

    def print_pattern_tests(self, pattern: str, rows: List[dict]):
        """Print pattern test results for a list of filenames"""
        table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED,
                      title=f"Pattern: {pattern}")
        table.add_column("Filename", style="cyan")
        table.add_column("Match", justify="center")
        table.add_column("Extracted Data", style="white")
        table.add_column("Confidence", justify="right")

        for row in rows:
            match = "[green]✓[/green]" if row['matches'] else "[red]✗[/red]"
            data = ', '.join(f"{k}={v}" for k, v in row['extracted_data'].items())
            if row['errors']:
                data = f"[red]{'; '.join(row['errors'])}[/red]"
            table.add_row(row['filename'], match, data, f"{row['confidence']}%")

        self.console.print(table)

    def create_batch_progress(self) -> Progress:
        """Create progress bar for batch processing"""
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=self.console
        )
        return progress

    def print_success(self, message: str = "Processing completed!"):
        """Print success message"""
        self.console.print(f"[bold green]✓ {message}[/bold green]")

    def print_error(self, message: str, details: Optional[str] = None):
        """Print error message"""
        self.console.print(f"[bold red]✗ {message}[/bold red]")
        if details:
            self.console.print(f"[red]Details: {details}[/red]")

    def print_warning(self, message: str):
        """Print warning message"""
        self.console.print(f"[bold yellow]⚠ {message}[/bold yellow]")

    def print_info(self, message: str):
        """Print info message"""
        self.console.print(f"[bold cyan]ℹ {message}[/bold cyan]")

    def print_skipped(self, reason: str = "Skipped"):
        """Print skip message"""
        self.console.print(f"[bold yellow]⏭ {reason}[/bold yellow]")

    def print_final_summary(self, stats: BatchProcessingStats):
        """Print final processing summary"""
        ok = stats.failed_files == 0
        status_icon = "✓" if ok else "✗"
        status_color = "green" if ok else "yellow"
        title = "Processing Complete" if ok else "Processing Finished With Errors"

        table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
        table.add_column("Metric", style="cyan")
        table.add_column("Count", style="white", justify="right")

        table.add_row("Total Files", str(stats.total_files))
        table.add_row("Transcoded", f"[green]{stats.transcoded_files}[/green]")
        table.add_row("Copied", f"[blue]{stats.copied_files}[/blue]")
        table.add_row("Fallback Copies", f"[yellow]{stats.fallback_files}[/yellow]")
        table.add_row("Skipped", f"[yellow]{stats.skipped_files}[/yellow]")

        if stats.failed_files > 0:
            table.add_row("Failed", f"[red]{stats.failed_files}[/red]")

        if stats.processing_duration:
            table.add_row("Duration", f"{stats.processing_duration:.1f}s")

        self.console.print(Panel(
            table,
            title=f"[bold {status_color}]{status_icon} {title}[/bold {status_color}]",
            border_style=status_color
        ))


# Global rich output instance
rich_output = RichOutput()
