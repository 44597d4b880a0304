"""
Interactive REPL for cellcoach.
"""

from .session import CourseREPL
from .commands import COMMANDS, get_command_help

__all__ = ['CourseREPL', 'COMMANDS', 'get_command_help']
