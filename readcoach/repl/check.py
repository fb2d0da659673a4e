#!/usr/bin/env python3
"""
Terminal runner for the knowledge check.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from ..tutoring import KnowledgeCheck


def run_knowledge_check(check: KnowledgeCheck, console: Optional[Console] = None) -> Optional[int]:
    """Ask every question, let the learner revise, then score. Returns the score"""
    console = console or Console()
    lesson = check.lesson

    console.print(Panel(
        f"[bold]Knowledge Check[/bold] - {lesson.title}\n\n"
        f"Answer the {len(lesson)} questions below to see how well you understood the passage.",
        border_style="blue",
    ))

    while True:
        for index, question in enumerate(lesson):
            _ask(console, check, index)

        if Confirm.ask("Submit your answers?", default=True, console=console):
            break

        revise = Prompt.ask(
            "Question number to change",
            choices=[str(i + 1) for i in range(len(lesson))],
            console=console,
        )
        _ask(console, check, int(revise) - 1)
        if Confirm.ask("Submit your answers?", default=True, console=console):
            break

    score = check.submit()
    _print_results(console, check)
    return score


def _ask(console: Console, check: KnowledgeCheck, index: int):
    question = check.lesson[index]
    lines = [f"[bold]{index + 1}. {question.text}[/bold]", ""]
    for key, text in question.options.items():
        lines.append(f"  [bold]{key}[/bold]  {text}")
    console.print(Panel('\n'.join(lines), border_style="white"))

    choice = Prompt.ask(
        "Your answer",
        choices=list(question.option_keys),
        default=check.selected.get(index),
        case_sensitive=False,
        console=console,
    )
    check.select(index, choice)


def _print_results(console: Console, check: KnowledgeCheck):
    table = Table(title="Results")
    table.add_column("#", style="cyan")
    table.add_column("Your answer")
    table.add_column("Correct")
    table.add_column("")

    for index, row in enumerate(check.results()):
        mark = "[green]✓[/green]" if row['is_correct'] else "[red]✗[/red]"
        table.add_row(str(index + 1), row['selected'] or "-", row['correct_option'], mark)

    console.print(table)
    console.print(f"\nYou scored [bold]{check.score}[/bold] out of {len(check.lesson)}.")
