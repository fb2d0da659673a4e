#!/usr/bin/env python3
"""
Interactive REPL for one reading session.
"""

import logging
from pathlib import Path
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ..config import get_config_dir
from ..content import Lesson
from ..tutoring import SessionController, SessionResponse, SessionTimer
from .commands import ALIASES, get_command_help

logger = logging.getLogger(__name__)


class LearnREPL:
    """Terminal front end for a SessionController"""

    def __init__(
        self,
        controller: SessionController,
        minutes: float,
        console: Optional[Console] = None,
        participant_id: str = '',
    ):
        self.controller = controller
        self.lesson: Lesson = controller.lesson
        self.console = console or Console()
        self.participant_id = participant_id

        self.timer = SessionTimer(minutes * 60, on_expire=self._on_expire)
        self._live: Optional[Live] = None

        history_path = get_config_dir() / 'repl_history'
        history_path.parent.mkdir(parents=True, exist_ok=True)
        self.prompt_session = PromptSession(
            history=FileHistory(str(history_path)),
            bottom_toolbar=self._toolbar,
            refresh_interval=1.0,
        )

    async def run(self):
        """Main REPL loop"""
        self._print_welcome()
        self._show_passage()
        self._show_question()
        self.timer.start()

        while not self.controller.finished:
            try:
                with patch_stdout():
                    user_input = await self.prompt_session.prompt_async(self._get_prompt())
            except KeyboardInterrupt:
                self.console.print("\n[dim]Use 'quit' to end the session[/dim]")
                continue
            except EOFError:
                break

            if self.controller.finished or not user_input.strip():
                continue

            try:
                result = await self._process_command(user_input.strip())
            except Exception as e:
                logger.debug("Command failed", exc_info=True)
                self.console.print(f"[red]Error: {e}[/red]")
                continue

            if result == 'exit':
                break

        self.timer.cancel()
        if not self.controller.finished:
            self.controller.end('quit')
        self._print_summary()

        if self.controller.log_sink is not None:
            await self.controller.log_sink.drain()

    # === Prompt ===

    def _get_prompt(self) -> str:
        view = self.controller.question_view()
        parts = ['readcoach', f"[Q{view.index + 1}/{view.total}]"]
        if view.review:
            parts.append('(review)')
        elif view.reflection_required:
            parts.append('(reply to the tutor)')
        return ' '.join(parts) + '> '

    def _toolbar(self) -> str:
        view = self.controller.question_view()
        return (
            f" Time left: {self.timer.format_remaining()}"
            f" | Score: {self.controller.history.score()}/{view.total}"
            f" | Mode {self.controller.mode.value}"
        )

    def _on_expire(self):
        self.controller.expire()
        self.console.print("\n[bold red]Time is up![/bold red] The session has been submitted.")
        app = self.prompt_session.app
        if app.is_running:
            app.exit(result='')

    # === Dispatch ===

    async def _process_command(self, user_input: str) -> Optional[str]:
        """Process user input and dispatch to handlers"""
        question = self.controller.current_question
        if user_input.upper() in question.options:
            return await self._cmd_answer(user_input)

        parts = user_input.split(maxsplit=1)
        command = ALIASES.get(parts[0].lower(), parts[0].lower())
        args = parts[1] if len(parts) > 1 else ''

        handlers = {
            'answer': self._cmd_answer,
            'next': self._cmd_next,
            'back': self._cmd_back,
            'passage': self._cmd_passage,
            'question': self._cmd_question,
            'status': self._cmd_status,
            'explain': self._cmd_explain,
            'chat': self._cmd_chat,
            'help': self._cmd_help,
        }

        if command == 'quit':
            return 'exit'

        handler = handlers.get(command)
        if handler:
            return await handler(args)

        # Anything else is a message for the tutor
        return await self._cmd_chat(user_input)

    # === Command Handlers ===

    async def _cmd_answer(self, args: str) -> None:
        if not args:
            self.console.print("[red]Usage: answer <letter>[/red]")
            return
        response = await self._with_tutor(self.controller.submit_answer(args))
        self._report(response)
        if response.accepted:
            self._show_outcome()

    async def _cmd_next(self, args: str) -> None:
        response = self.controller.request_next()
        self._report(response)
        if response.accepted and not response.finished:
            self._show_question()

    async def _cmd_back(self, args: str) -> None:
        response = self.controller.request_back()
        self._report(response)
        if response.accepted:
            self._show_question()

    async def _cmd_passage(self, args: str) -> None:
        self._show_passage()

    async def _cmd_question(self, args: str) -> None:
        self._show_question()

    async def _cmd_status(self, args: str) -> None:
        view = self.controller.question_view()
        table = Table(title="Session Status", show_header=False)
        table.add_column("", style="cyan")
        table.add_column("")
        table.add_row("Question", f"{view.index + 1} of {view.total}")
        table.add_row("Furthest reached", str(self.controller.cursor.max_index_reached))
        table.add_row("Score", f"{self.controller.history.score()}/{view.total}")
        table.add_row("Attempt", view.attempt.phase.value)
        table.add_row("Time left", self.timer.format_remaining())
        self.console.print(table)

    async def _cmd_explain(self, args: str) -> None:
        response = await self._with_tutor(self.controller.request_explanation())
        self._report(response)

    async def _cmd_chat(self, args: str) -> None:
        if not args:
            self.console.print("[red]Usage: chat <message>[/red]")
            return
        response = await self._with_tutor(self.controller.receive_user_reply(args))
        self._report(response)
        if response.accepted and not self.controller.finished:
            view = self.controller.question_view()
            if view.attempt.is_completed and not view.review and view.can_proceed:
                self.console.print("[dim]Type 'next' to continue.[/dim]")

    async def _cmd_help(self, args: str) -> None:
        self.console.print(get_command_help(args if args else None))

    # === Tutor output ===

    async def _with_tutor(self, action) -> SessionResponse:
        """Await a controller action, rendering tutor fragments as they arrive"""
        self.controller.on_fragment = self._render_fragment
        try:
            return await action
        finally:
            self.controller.on_fragment = None
            if self._live is not None:
                self._live.stop()
                self._live = None

    def _render_fragment(self, message):
        panel = Panel(Markdown(message.content or '...'), title="Tutor", border_style="magenta")
        if self._live is None:
            self._live = Live(panel, console=self.console, refresh_per_second=12)
            self._live.start()
        else:
            self._live.update(panel)

    def _report(self, response: SessionResponse):
        if response.notice:
            style = "yellow" if response.accepted else "red"
            self.console.print(f"[{style}]{response.notice}[/{style}]")

    # === Display ===

    def _print_welcome(self):
        mode = self.controller.mode.value
        welcome = f"""
[bold blue]readcoach[/bold blue] - {self.lesson.title}

Read the passage, then answer {len(self.lesson)} questions.
Mode {mode}: {"one attempt per question" if mode == 'A' else "wrong answers open a short talk with your tutor"}.

[dim]Type a letter to answer. Commands: next, back, passage, question, status, help, quit
Anything else you type goes to the tutor.[/dim]
"""
        self.console.print(Panel(welcome, border_style="blue"))
        self.console.print(Panel(self.controller.chat[0].content, title="Tutor", border_style="magenta"))

    def _show_passage(self):
        self.console.print(Panel(self.lesson.passage, title="Passage", border_style="cyan"))

    def _show_question(self):
        view = self.controller.question_view()
        question = self.lesson[view.index]

        title = f"Question {view.index + 1} of {view.total}"
        if question.category:
            title += f" [dim]({question.category})[/dim]"
        if view.review:
            title += " [yellow]review[/yellow]"

        lines = [f"[bold]{question.text}[/bold]", ""]
        selected = view.attempt.selected_option
        for key, text in question.options.items():
            marker = ' '
            if view.attempt.is_answered:
                if key == question.correct_option:
                    marker = '[green]✓[/green]'
                elif key == selected:
                    marker = '[red]✗[/red]'
            elif key == selected:
                marker = '[red]✗[/red]'
            lines.append(f" {marker} [bold]{key}[/bold]  {text}")

        self.console.print(Panel('\n'.join(lines), title=title, border_style="white"))
        self._show_outcome()

    def _show_outcome(self):
        view = self.controller.question_view()
        attempt = view.attempt
        question = self.lesson[view.index]

        if attempt.is_answered:
            if attempt.is_correct:
                self.console.print("[bold green]Correct![/bold green]")
            else:
                self.console.print(
                    f"[bold red]Incorrect.[/bold red] The correct answer was {question.correct_option}."
                )

        if view.reflection_required:
            self.console.print("[yellow]Please answer the tutor's question to continue.[/yellow]")
        elif attempt.phase.value == 'retrying' and not view.review:
            self.console.print("[dim]Try again: pick another option.[/dim]")

    def _print_summary(self):
        summary = self.controller.summary()

        table = Table(title=f"Session Complete ({summary['finishReason']})")
        table.add_column("#", style="cyan")
        table.add_column("Category")
        table.add_column("Your answer")
        table.add_column("Result")

        for index, question in enumerate(self.lesson):
            record = self.controller.history.get(index)
            if record is None:
                table.add_row(str(index + 1), question.category, "-", "[dim]not reached[/dim]")
                continue
            result = "[green]correct[/green]" if record.is_correct else "[red]incorrect[/red]"
            if record.to_dict().get('timedOut'):
                result += " [dim](time)[/dim]"
            table.add_row(str(index + 1), question.category, record.selected_option or "-", result)

        self.console.print(table)
        self.console.print(
            f"\nScore: [bold]{summary['score']}/{summary['total']}[/bold]"
            f"  |  Time: {int(summary['elapsedSeconds'])}s"
        )
        if self.participant_id:
            self.console.print(f"[dim]Results saved for participant {self.participant_id}.[/dim]")
