#!/usr/bin/env python3
"""
cellcoach - Incremental Cell Coach CLI

Usage:
    cellcoach -i                           # REPL over the bundled course
    cellcoach course.json -i --stage 2     # REPL starting at stage 2
    cellcoach course.json --watch ./work   # Edit cells as files
    cellcoach course.json --verify         # Check reference solutions
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import parse_assignment, set_config_value, get_settings
from .errors import CellCoachError
from .execution import Course, CourseSession, load_course
from .logging_setup import configure_logging

BUNDLED_COURSE = Path(__file__).parent / 'courses' / 'intro.json'


def verify_course(course: Course, console: Console) -> List[str]:
    """
    Run every stage's reference solution through the engine.
    Returns a description of each cell whose solution fails its own validation.
    """
    failures = []
    table = Table(title="Solution check", show_header=True, header_style="bold")
    table.add_column("Stage", justify="right")
    table.add_column("Cell", justify="right")
    table.add_column("Result")

    for stage in course.stages:
        if stage.solution is None:
            table.add_row(str(stage.id), "-", "[dim]no solution[/dim]")
            continue

        session = CourseSession.from_config(course)
        session.load_stage(stage.id)
        for cell in stage.cells:
            solution = stage.solution_for(cell.index)
            if solution is not None:
                session.set_source(cell.index, solution)

        for result in session.run_all():
            if result.passed:
                table.add_row(str(stage.id), str(result.cell_index + 1), "[green]ok[/green]")
                continue
            reason = result.error_text or (result.feedback.status_text if result.feedback else 'failed')
            table.add_row(str(stage.id), str(result.cell_index + 1), f"[red]{reason}[/red]")
            failures.append(f"stage {stage.id} cell {result.cell_index + 1}: {reason}")

        # Restore starter code for whoever uses the course next
        session.reset(restore_sources=True)

    console.print(table)
    return failures


def list_stages(course: Course, console: Console):
    from .display import stages_table
    console.print(stages_table(course.stages, []))


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""

    parser = argparse.ArgumentParser(
        description='cellcoach - run and check course cells one at a time',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cellcoach -i                                 # Interactive REPL over the bundled course
  cellcoach my_course.json -i --stage 3        # Start at stage 3
  cellcoach my_course.json --watch ./work      # Run cells as you save cell_<n>.py files
  cellcoach my_course.json --check             # Load the course and report problems
  cellcoach my_course.json --verify            # Run reference solutions against their checks
  cellcoach --list                             # List stages
  cellcoach --config step_limit=20000          # Persist a setting
        """
    )

    parser.add_argument('course', nargs='?', default=str(BUNDLED_COURSE),
                        help='Course content JSON (default: bundled introductory course)')
    parser.add_argument('-i', '--interactive', action='store_true',
                        help='Start the interactive REPL')
    parser.add_argument('--stage', metavar='ID', help='Stage to open first')
    parser.add_argument('--watch', metavar='DIR',
                        help='Export the stage cells to DIR and run each one when its file is saved')
    parser.add_argument('--check', action='store_true',
                        help='Load the course and report any content errors')
    parser.add_argument('--verify', action='store_true',
                        help="Run each stage's reference solution through its own validation")
    parser.add_argument('--list', action='store_true', help='List the stages of the course')
    parser.add_argument('--config', metavar='KEY=VALUE', action='append',
                        help='Save a setting to ~/.cellcoach/config.json')
    parser.add_argument('--log-level', help='Override the log level for this run')

    args = parser.parse_args(argv)
    console = Console()
    configure_logging(args.log_level)

    if args.config:
        for assignment in args.config:
            try:
                key, value = parse_assignment(assignment)
            except ValueError as e:
                console.print(f"[red]Error: {escape(str(e))}[/red]")
                return 2
            set_config_value(key, value)
            console.print(f"[green]Saved[/green] {key} = {value!r}")
        return 0

    try:
        course = load_course(args.course)
    except CellCoachError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    if not course.stages:
        console.print(f"[red]Error: {args.course} has no stages[/red]")
        return 1

    if args.check:
        console.print(f"[green]OK[/green] {args.course}: {len(course.stages)} stage(s), "
                      f"{sum(len(s.cells) for s in course.stages)} cell(s)")
        settings = get_settings()
        console.print(f"[dim]step_limit={settings['step_limit']} "
                      f"max_suggested_hints={settings['max_suggested_hints']}[/dim]")
        return 0

    if args.list:
        list_stages(course, console)
        return 0

    if args.verify:
        failures = verify_course(course, console)
        if failures:
            console.print(f"[red]{len(failures)} cell(s) fail with their reference solution.[/red]")
            return 1
        console.print("[green]All reference solutions pass.[/green]")
        return 0

    try:
        if args.watch:
            from .watch import CellFileWatcher
            session = CourseSession.from_config(course)
            session.load_stage(args.stage if args.stage is not None else course.stage_ids[0])
            watcher = CellFileWatcher(args.watch, session, console=console)
            watcher.start()
            watcher.wait()
            return 0

        if args.interactive:
            from .repl import CourseREPL
            repl = CourseREPL(course, console=console)
            repl.run(stage_id=args.stage)
            return 0
    except CellCoachError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    parser.print_help()
    return 0


if __name__ == '__main__':
    sys.exit(main())
