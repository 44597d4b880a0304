#!/usr/bin/env python3
"""
File watcher mode.
Exports a stage's cells to cell_<n>.py files and re-runs a cell each time
its file is saved.
"""

import os
import re
import time
import threading
from pathlib import Path
from typing import Dict, List, Optional

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileModifiedEvent

from rich.console import Console

from . import display
from .errors import RunInProgressError
from .execution import CourseSession, Stage

CELL_FILE_PATTERN = re.compile(r'^cell_(\d+)\.py$')


def cell_filename(index: int) -> str:
    """0-based cell index -> cell_<n>.py with n starting at 1"""
    return f"cell_{index + 1}.py"


def export_cells(stage: Stage, directory: str, overwrite: bool = False) -> List[Path]:
    """
    Write each cell's source to its own file. Existing files are kept unless
    overwrite is set, so a learner's work survives a restart.
    """
    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)

    paths = []
    for cell in stage.cells:
        path = target / cell_filename(cell.index)
        if overwrite or not path.exists():
            header = f"# Stage {stage.id}, cell {cell.index + 1}: {cell.title}\n" if cell.title else ''
            path.write_text(header + cell.source)
        paths.append(path)
    return paths


class CellFileReviewer(FileSystemEventHandler):
    """Runs a cell whenever its file is saved"""

    DEBOUNCE_SECONDS = 1.5

    def __init__(self, directory: str, session: CourseSession, console: Console = None):
        super().__init__()
        self.directory = os.path.abspath(directory)
        self.session = session
        self.console = console or Console()
        self.last_modified: Dict[int, float] = {}
        self.last_content: Dict[int, str] = {}
        self._reviewing = False

    def cell_index_for(self, path: str) -> Optional[int]:
        """Cell index for a file in the watched directory, None for any other file"""
        path = os.path.abspath(path)
        if os.path.dirname(path) != self.directory:
            return None
        match = CELL_FILE_PATTERN.match(os.path.basename(path))
        if not match:
            return None
        index = int(match.group(1)) - 1
        if not 0 <= index < len(self.session.require_stage().cells):
            return None
        return index

    def on_modified(self, event):
        """Called when a file in the directory is modified"""
        if not isinstance(event, FileModifiedEvent):
            return

        index = self.cell_index_for(event.src_path)
        if index is None:
            return

        # Debounce - editors often write a file more than once per save
        current_time = time.time()
        if current_time - self.last_modified.get(index, 0) < self.DEBOUNCE_SECONDS:
            return
        self.last_modified[index] = current_time

        # Don't process if already reviewing
        if self._reviewing:
            return

        try:
            with open(event.src_path, 'r') as f:
                code = f.read()
        except OSError as e:
            self.console.print(f"[red]Error reading file: {e}[/red]")
            return

        # Skip if content hasn't changed
        if code == self.last_content.get(index):
            return
        self.last_content[index] = code

        thread = threading.Thread(target=self.review, args=(index, code))
        thread.daemon = True
        thread.start()

    def review(self, index: int, code: str):
        """Update the cell's source from its file and run it"""
        self._reviewing = True

        try:
            self.session.set_source(index, code)
            self.console.print(f"\n[dim]{'─' * 70}[/dim]")
            self.console.print(f"[cyan]Running cell {index + 1}...[/cyan]")

            try:
                result = self.session.run_cell(index)
            except RunInProgressError:
                self.console.print("[yellow]Another cell is still running; save again when it finishes.[/yellow]")
                return

            display.show_result(self.console, result)

            if self.session.is_stage_complete():
                display.show_completion(self.console, self.session.require_stage())
                self.console.print("\n[dim]Press Ctrl+C to exit[/dim]")

        finally:
            self._reviewing = False


class CellFileWatcher:
    """Manages the file watching process"""

    def __init__(self, directory: str, session: CourseSession, console: Console = None):
        self.directory = directory
        self.session = session
        self.console = console or Console()
        self.observer = None
        self.handler = None

    def start(self):
        """Export the cells and start watching the directory"""
        stage = self.session.require_stage()
        paths = export_cells(stage, self.directory)

        self.handler = CellFileReviewer(self.directory, self.session, console=self.console)
        self.observer = Observer()
        self.observer.schedule(self.handler, path=os.path.abspath(self.directory), recursive=False)
        self.observer.start()

        self.console.print(f"\n[green]Watching {len(paths)} cell file(s) in {self.directory}...[/green]")
        for path in paths:
            self.console.print(f"  [dim]{path.name}[/dim]")
        self.console.print("[dim]Each cell runs every time you save its file.[/dim]")

    def stop(self):
        """Stop watching"""
        if self.observer:
            self.observer.stop()
            self.observer.join()

    def wait(self):
        """Wait until every cell is completed or interrupted"""
        try:
            while not self.session.is_stage_complete():
                time.sleep(0.5)
        except KeyboardInterrupt:
            self.console.print("\n[dim]Stopping file watcher...[/dim]")
        finally:
            self.stop()
