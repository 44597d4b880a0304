#!/usr/bin/env python3
"""
Interactive REPL for working through a course cell by cell.
"""

from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from .. import display
from ..config import get_config_dir
from ..errors import CellCoachError
from ..execution import Course, CourseSession
from .commands import get_command_help


class CourseREPL:
    """Interactive REPL over one CourseSession"""

    def __init__(
        self,
        course: Course,
        console: Optional[Console] = None,
        prompt_session: Optional[PromptSession] = None,
        session: Optional[CourseSession] = None,
    ):
        self.console = console or Console()
        self.course = course

        # REPL setup
        if prompt_session is None:
            history_path = get_config_dir() / 'repl_history'
            prompt_session = PromptSession(
                history=FileHistory(str(history_path)),
                auto_suggest=AutoSuggestFromHistory(),
            )
        self.prompt_session = prompt_session

        self.session = session or CourseSession.from_config(
            course, on_input_request=self._read_program_input
        )

    def run(self, stage_id=None):
        """Main REPL loop"""
        self._print_welcome()
        if stage_id is not None:
            self._cmd_load(str(stage_id))

        while True:
            try:
                user_input = self.prompt_session.prompt(self._get_prompt())

                if not user_input.strip():
                    continue

                result = self._process_command(user_input.strip())

                if result == 'exit':
                    self._handle_exit()
                    break

            except KeyboardInterrupt:
                self.console.print("\n[dim]Use 'exit' to quit[/dim]")
            except EOFError:
                self._handle_exit()
                break
            except CellCoachError as e:
                self.console.print(f"[red]Error: {escape(str(e))}[/red]")

    def _print_welcome(self):
        """Print welcome message"""
        title = self.course.title or 'Incremental Cell Coach'
        welcome = f"""
[bold blue]cellcoach[/bold blue] - {escape(title)}

{len(self.course.stages)} stage(s). Each cell runs together with the cells before it that already passed.

[dim]Commands: stages, load, show, edit, run, hint, help
Type 'help' for all commands or 'help <cmd>' for details.[/dim]
"""
        self.console.print(Panel(welcome, border_style="blue"))

    def _get_prompt(self) -> str:
        """Generate context-aware prompt"""
        parts = ['cellcoach']
        stage = self.session.active_stage
        if stage is not None:
            parts.append(f"[{stage.id}]")
        return ' '.join(parts) + '> '

    def _read_program_input(self, prompt: str) -> str:
        """Answer input() calls made by the learner's program"""
        return self.prompt_session.prompt(prompt)

    def _process_command(self, user_input: str) -> Optional[str]:
        """Process user input and dispatch to handlers"""
        parts = user_input.split(maxsplit=1)
        command = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ''

        handlers = {
            'stages': self._cmd_stages,
            'load': self._cmd_load,
            'next': self._cmd_next,
            'show': self._cmd_show,
            'edit': self._cmd_edit,
            'run': self._cmd_run,
            'runall': self._cmd_runall,
            'status': self._cmd_status,
            'reset': self._cmd_reset,
            'hint': self._cmd_hint,
            'solution': self._cmd_solution,
            'help': self._cmd_help,
            'clear': self._cmd_clear,
            'exit': lambda _: 'exit',
            'quit': lambda _: 'exit',
        }

        handler = handlers.get(command)
        if handler:
            return handler(args)

        self.console.print(f"[red]Unknown command: {escape(command)}[/red]")
        self.console.print("[dim]Type 'help' for commands.[/dim]")
        return None

    def _parse_cell(self, args: str, usage: str, default: Optional[int] = None) -> Optional[int]:
        """1-based cell argument -> 0-based index; prints usage and returns None if invalid"""
        if not args:
            if default is None:
                self.console.print(f"[red]Usage: {escape(usage)}[/red]")
            return default
        try:
            return int(args.split()[0]) - 1
        except ValueError:
            self.console.print(f"[red]Usage: {escape(usage)}[/red]")
            return None

    def _require_stage(self) -> bool:
        if self.session.active_stage is None:
            self.console.print("[yellow]No stage loaded. Use 'load <stage_id>' first.[/yellow]")
            return False
        return True

    # === Command Handlers ===

    def _cmd_stages(self, args: str) -> None:
        """List stages"""
        active = self.session.active_stage
        self.console.print(display.stages_table(
            self.course.stages,
            self.session.completed_stages,
            active_id=active.id if active else None,
        ))

    def _cmd_load(self, args: str) -> None:
        """Load a stage"""
        if not args:
            self.console.print("[red]Usage: load <stage_id>[/red]")
            return

        stage = self.session.load_stage(args)
        self.console.print(f"\n[green]Loaded:[/green] Stage {stage.id}")
        display.show_stage(self.console, stage)

    def _cmd_next(self, args: str) -> None:
        if not self._require_stage():
            return
        stage = self.session.next_stage()
        if stage is None:
            self.console.print("[green]That was the last stage.[/green]")
            return
        self.console.print(f"\n[green]Loaded:[/green] Stage {stage.id}")
        display.show_stage(self.console, stage)

    def _cmd_show(self, args: str) -> None:
        """Show the stage or one cell"""
        if not self._require_stage():
            return
        stage = self.session.active_stage
        if not args:
            display.show_stage(self.console, stage)
            return
        index = self._parse_cell(args, 'show [cell]')
        if index is not None:
            display.show_cell(self.console, stage, index)

    def _cmd_edit(self, args: str) -> None:
        """Replace a cell's source with multi-line input"""
        if not self._require_stage():
            return
        index = self._parse_cell(args, 'edit <cell>')
        if index is None:
            return
        cell = self.session.active_stage.get_cell(index)

        self.console.print(f"[dim]Editing cell {index + 1}. Press Esc then Enter to finish.[/dim]")
        source = self.prompt_session.prompt(
            f"cell {index + 1}> ", multiline=True, default=cell.source
        )
        self.session.set_source(index, source)
        self.console.print(f"[green]Cell {index + 1} updated.[/green] [dim]Use 'run {index + 1}' to run it.[/dim]")

    def _cmd_run(self, args: str) -> None:
        """Run one cell"""
        if not self._require_stage():
            return
        index = self._parse_cell(args, 'run <cell>')
        if index is None:
            return

        result = self.session.run_cell(index)
        display.show_result(self.console, result)
        self._check_completion()

    def _cmd_runall(self, args: str) -> None:
        """Run every cell in order"""
        if not self._require_stage():
            return
        for result in self.session.run_all():
            display.show_result(self.console, result)
        self._check_completion()

    def _check_completion(self):
        stage = self.session.active_stage
        if self.session.is_stage_complete():
            display.show_completion(self.console, stage)
            if self.course.next_stage(stage) is not None:
                self.console.print("[cyan]Type 'next' to continue to the next stage.[/cyan]")

    def _cmd_status(self, args: str) -> None:
        """Show cell statuses"""
        if not self._require_stage():
            return
        stage = self.session.active_stage
        self.console.print(display.status_table(stage, self.session.statuses()))

    def _cmd_reset(self, args: str) -> None:
        """Reset the stage"""
        if not self._require_stage():
            return
        restore = args.strip() == '--code'
        self.session.reset(restore_sources=restore)
        if restore:
            self.console.print("[green]Stage reset. Starter code restored.[/green]")
        else:
            self.console.print("[green]Stage reset. Every cell is Pending again.[/green]")

    def _cmd_hint(self, args: str) -> None:
        """Show the next hint"""
        if not self._require_stage():
            return
        index = self._parse_cell(args, 'hint [cell]', default=0)
        if index is None:
            return
        hint = self.session.next_hint(index)
        if hint is None:
            self.console.print("[yellow]No hints for this stage.[/yellow]")
            return
        self.console.print(Panel(Text(hint), title="[cyan]Hint[/cyan]", border_style="cyan"))

    def _cmd_solution(self, args: str) -> None:
        """Show the reference solution"""
        if not self._require_stage():
            return
        index = self._parse_cell(args, 'solution [cell]', default=0)
        if index is None:
            return
        solution = self.session.active_stage.solution_for(index)
        if solution is None:
            self.console.print("[yellow]No solution available for this cell.[/yellow]")
            return
        self.console.print(Panel(
            Syntax(solution.rstrip('\n'), 'python'),
            title=f"[magenta]Solution, cell {index + 1}[/magenta]",
            border_style="magenta",
        ))

    def _cmd_help(self, args: str) -> None:
        """Show help"""
        self.console.print(get_command_help(args if args else None), markup=False)

    def _cmd_clear(self, args: str) -> None:
        """Clear the screen"""
        self.console.clear()

    def _handle_exit(self):
        completed = self.session.completed_stages
        if completed:
            self.console.print(f"\n[dim]Stages completed this session: {', '.join(str(s) for s in completed)}[/dim]")
        self.console.print("[dim]Goodbye![/dim]")
