#!/usr/bin/env python3
"""
Command definitions for the reading session REPL.
"""

COMMANDS = {
    # Answering
    'a': {
        'help': 'Choose an option (A, B, C or D)',
        'usage': '<letter>',
        'examples': ['a', 'B'],
    },
    'explain': {
        'help': 'Ask the tutor why your answer was wrong (mode A)',
        'usage': 'explain',
        'examples': ['explain'],
    },

    # Navigation
    'next': {
        'help': 'Go to the next question (finishes the session on the last one)',
        'usage': 'next',
        'examples': ['next', 'n'],
    },
    'back': {
        'help': 'Review the previous question',
        'usage': 'back',
        'examples': ['back'],
    },

    # Reading
    'passage': {
        'help': 'Show the reading passage again',
        'usage': 'passage',
        'examples': ['passage'],
    },
    'question': {
        'help': 'Show the current question and its options',
        'usage': 'question',
        'examples': ['question', 'q'],
    },
    'status': {
        'help': 'Show score, progress and time left',
        'usage': 'status',
        'examples': ['status'],
    },
    'chat': {
        'help': 'Send a message to the tutor (any text that is not a command)',
        'usage': 'chat <message>  |  <message>',
        'examples': ['chat I think the dance shows distance', 'Why is the angle important?'],
    },

    # Utilities
    'help': {
        'help': 'Show available commands',
        'usage': 'help [command]',
        'examples': ['help', 'help next'],
    },
    'quit': {
        'help': 'End the session now',
        'usage': 'quit',
        'examples': ['quit', 'exit'],
    },
}

# Short forms accepted at the prompt
ALIASES = {
    'n': 'next',
    'q': 'question',
    'exit': 'quit',
    '?': 'help',
}


def get_command_help(command: str = None) -> str:
    """Get help text for a command or all commands"""
    command = ALIASES.get(command, command)
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
        'Answering': ['a', 'explain', 'chat'],
        'Navigation': ['next', 'back'],
        'Reading': ['passage', 'question', 'status'],
        'Utilities': ['help', 'quit'],
    }

    lines = ["Available commands:\n"]
    for group, cmds in groups.items():
        lines.append(f"  {group}:")
        for cmd in cmds:
            name = 'A-D' if cmd == 'a' else cmd
            lines.append(f"    {name:12} - {COMMANDS[cmd]['help']}")
        lines.append("")

    lines.append("Type 'help <command>' for detailed help on a specific command.")
    return '\n'.join(lines)
