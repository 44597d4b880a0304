#!/usr/bin/env python3
"""
Command definitions for the course REPL.
"""

COMMANDS = {
    # Course navigation
    'stages': {
        'help': 'List the stages of the course',
        'usage': 'stages',
        'examples': ['stages'],
    },
    'load': {
        'help': 'Load a stage by ID (its cells start over)',
        'usage': 'load <stage_id>',
        'examples': ['load 1', 'load loops'],
    },
    'next': {
        'help': 'Load the stage after the current one',
        'usage': 'next',
        'examples': ['next'],
    },
    'show': {
        'help': 'Show the current stage, or one cell of it',
        'usage': 'show [cell]',
        'examples': ['show', 'show 2'],
    },

    # Working on cells
    'edit': {
        'help': 'Replace the source of a cell (finish with Esc+Enter)',
        'usage': 'edit <cell>',
        'examples': ['edit 1'],
    },
    'run': {
        'help': 'Run a cell together with the successful cells before it',
        'usage': 'run <cell>',
        'examples': ['run 1', 'run 3'],
    },
    'runall': {
        'help': 'Run every cell of the stage in order',
        'usage': 'runall',
        'examples': ['runall'],
    },
    'status': {
        'help': 'Show the status of every cell in the stage',
        'usage': 'status',
        'examples': ['status'],
    },
    'reset': {
        'help': 'Mark every cell Pending again (add --code to restore starter code)',
        'usage': 'reset [--code]',
        'examples': ['reset', 'reset --code'],
    },

    # Help
    'hint': {
        'help': 'Get the next hint for the stage',
        'usage': 'hint [cell]',
        'examples': ['hint', 'hint 2'],
    },
    'solution': {
        'help': 'Show the reference solution',
        'usage': 'solution [cell]',
        'examples': ['solution', 'solution 2'],
    },

    # Utilities
    'help': {
        'help': 'Show available commands',
        'usage': 'help [command]',
        'examples': ['help', 'help run'],
    },
    'clear': {
        'help': 'Clear the screen',
        'usage': 'clear',
        'examples': ['clear'],
    },
    'exit': {
        'help': 'Exit the REPL',
        'usage': 'exit',
        'examples': ['exit', 'quit'],
    },
    'quit': {
        'help': 'Exit the REPL (alias for exit)',
        'usage': 'quit',
        'examples': ['quit'],
    },
}


def get_command_help(command: str = None) -> str:
    """Get help text for a command or all commands"""
    if command and command in COMMANDS:
        cmd = COMMANDS[command]
        lines = [
            f"  {command}: {cmd['help']}",
            f"  Usage: {cmd['usage']}",
        ]
        if cmd.get('examples'):
            lines.append(f"  Examples: {', '.join(cmd['examples'])}")
        return '\n'.join(lines)

    groups = {
        'Course': ['stages', 'load', 'next', 'show'],
        'Cells': ['edit', 'run', 'runall', 'status', 'reset'],
        'Help': ['hint', 'solution'],
        'Utilities': ['help', 'clear', 'exit'],
    }

    lines = ["Available commands:\n"]
    for group, cmds in groups.items():
        lines.append(f"  {group}:")
        for cmd in cmds:
            if cmd in COMMANDS:
                lines.append(f"    {cmd:12} - {COMMANDS[cmd]['help']}")
        lines.append("")

    lines.append("Type 'help <command>' for detailed help on a specific command.")
    return '\n'.join(lines)
