"""Terminal front ends: the tutored session and the knowledge check."""

from .session import LearnREPL
from .check import run_knowledge_check
from .commands import COMMANDS, get_command_help

__all__ = ["LearnREPL", "run_knowledge_check", "COMMANDS", "get_command_help"]
