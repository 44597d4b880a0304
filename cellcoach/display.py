#!/usr/bin/env python3
"""
Rich renderers for run results and stage progress.
Only reads ExecutionResult, Stage and CellStatus; never changes state.
"""

from typing import List

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from .execution.feedback import fenced
from .execution.state import CellStatus, ExecutionResult, RunStatus, Stage


STATUS_STYLES = {
    CellStatus.PENDING: ('dim', 'Pending'),
    CellStatus.RUNNING: ('cyan', 'Running'),
    CellStatus.COMPLETED: ('green', 'Completed'),
    CellStatus.ERROR: ('red', 'Error'),
}


def show_stage(console: Console, stage: Stage):
    """Stage title, challenge text and each cell's instruction and source"""
    title = stage.title or f"Stage {stage.id}"
    if stage.challenge:
        console.print(Panel(Markdown(stage.challenge), title=f"[bold cyan]{title}[/bold cyan]",
                            border_style="cyan"))
    else:
        console.print(f"\n[bold cyan]{title}[/bold cyan]")

    if stage.is_single_cell:
        show_cell(console, stage, 0)
        return
    for cell in stage.cells:
        show_cell(console, stage, cell.index)


def show_cell(console: Console, stage: Stage, index: int):
    cell = stage.get_cell(index)
    heading = cell.title or f"Cell {index + 1}"
    console.print(f"\n[bold]{index + 1}. {heading}[/bold]")
    if cell.instruction and not (stage.is_single_cell and cell.instruction == stage.challenge):
        console.print(Markdown(cell.instruction))
    console.print(Syntax(cell.source.rstrip('\n') or '# (empty)', 'python', line_numbers=True))


def show_result(console: Console, result: ExecutionResult):
    """One panel per run: green when it passed, red for errors, yellow for feedback"""
    label = f"Cell {result.cell_index + 1}"

    if result.status == RunStatus.STALE:
        console.print(f"[dim]{label}: result discarded, the stage changed while it was running.[/dim]")
        return

    if result.output:
        console.print(Panel(Text(result.output.rstrip('\n')), title=f"[dim]{label} output[/dim]",
                            border_style="dim"))

    if result.status == RunStatus.OK:
        console.print(f"[green]{label} Completed[/green]")
        return

    feedback = result.feedback
    if result.status == RunStatus.INTERPRETER_ERROR:
        title = f"[red]{label}: {feedback.status_text if feedback else 'Error'}[/red]"
        border = "red"
        message = feedback.message if feedback else fenced(result.error_text)
    else:
        title = f"[yellow]{label}: {feedback.status_text}[/yellow]"
        border = "yellow"
        message = feedback.message

    if feedback and feedback.hints:
        message += "\n\n**Suggested hints:**\n" + '\n'.join(f"- {hint}" for hint in feedback.hints)

    console.print(Panel(Markdown(message), title=title, border_style=border))


def status_table(stage: Stage, statuses: List[CellStatus]) -> Table:
    table = Table(title=f"Stage {stage.id} progress", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Cell")
    table.add_column("Status")

    for cell, status in zip(stage.cells, statuses):
        style, text = STATUS_STYLES[status]
        table.add_row(str(cell.index + 1), cell.title or f"Cell {cell.index + 1}",
                      f"[{style}]{text}[/{style}]")
    return table


def stages_table(stages: List[Stage], completed: List, active_id=None) -> Table:
    table = Table(title="Stages", show_header=True, header_style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Cells", justify="right")
    table.add_column("Done")

    completed_keys = {str(stage_id) for stage_id in completed}
    for stage in stages:
        marker = "[green]yes[/green]" if str(stage.id) in completed_keys else ""
        title = stage.title or ''
        if active_id is not None and str(stage.id) == str(active_id):
            title = f"[bold cyan]{title}[/bold cyan] (current)"
        table.add_row(str(stage.id), title, str(len(stage.cells)), marker)
    return table


def show_completion(console: Console, stage: Stage):
    console.print(f"\n[bold green]{'=' * 70}[/bold green]")
    console.print(f"[bold green]Stage {stage.id} complete! All {len(stage.cells)} cell(s) done.[/bold green]")
    console.print(f"[bold green]{'=' * 70}[/bold green]")
