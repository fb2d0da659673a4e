#!/usr/bin/env python3
"""
readcoach - Reading Comprehension Tutor CLI

Usage:
    readcoach learn                         # Tutored session (mode B)
    readcoach learn --mode A -p P042        # Single-attempt session, logged for P042
    readcoach check                         # Untutored knowledge check
    readcoach serve                         # Run the tutor service
    readcoach --setup                       # Configure a model API key
"""

import argparse
import asyncio
import sys

from rich.console import Console

from .log import setup_logging


def _load_lesson_or_exit(path, console: Console):
    from .content import LessonError, load_lesson
    try:
        return load_lesson(path)
    except LessonError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _cmd_learn(args, settings, console: Console):
    from .integrations import HttpTutorClient, LocalTutorClient, LogSink
    from .repl import LearnREPL
    from .tutoring import PromptPolicy, SessionController

    lesson = _load_lesson_or_exit(args.lesson, console)
    minutes = args.minutes if args.minutes is not None else settings.session_minutes

    if args.local:
        from .llm import create_llm_client
        llm = create_llm_client(settings.provider, settings.model)
        if llm is None:
            console.print("[red]No model provider configured. Run 'readcoach --setup' first.[/red]")
            sys.exit(1)
        client = LocalTutorClient(llm, PromptPolicy(language=settings.language, passage=lesson.passage))
    else:
        client = HttpTutorClient(args.tutor_url or settings.tutor_url)

    sink = LogSink(settings.log_url, args.participant) if args.participant else None
    controller = SessionController(lesson, client, mode=args.mode, log_sink=sink)
    repl = LearnREPL(controller, minutes=minutes, console=console, participant_id=args.participant or '')

    async def run():
        try:
            await repl.run()
        finally:
            await client.aclose()

    asyncio.run(run())


def _cmd_check(args, settings, console: Console):
    from .integrations import LogSink
    from .repl import run_knowledge_check
    from .tutoring import KnowledgeCheck

    lesson = _load_lesson_or_exit(args.lesson, console)
    sink = LogSink(settings.log_url, args.participant) if args.participant else None
    try:
        run_knowledge_check(KnowledgeCheck(lesson, log_sink=sink), console=console)
    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Knowledge check cancelled.[/dim]")


def _cmd_serve(args, settings, console: Console):
    import uvicorn
    from .server import create_app
    from .tutoring import PromptPolicy

    passage = ''
    if args.lesson:
        passage = _load_lesson_or_exit(args.lesson, console).passage

    if args.prompts:
        policy = PromptPolicy.from_file(args.prompts, language=settings.language, passage=passage)
    else:
        policy = PromptPolicy(language=settings.language, passage=passage)

    app = create_app(prompt_policy=policy, settings=settings)
    console.print(f"[green]Tutor service on http://{args.host}:{args.port}[/green]")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


def main():
    """Main CLI entry point"""

    parser = argparse.ArgumentParser(
        description='readcoach - Reading comprehension with a reflective AI tutor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  readcoach --setup                         # Configure API key (first time)
  readcoach serve                           # Start the tutor service on :8000
  readcoach learn                           # Tutored session, mode B (default)
  readcoach learn --mode A                  # One attempt per question
  readcoach learn --local                   # No service; call the model directly
  readcoach learn -p P042 --minutes 15      # Log results for participant P042
  readcoach check --lesson my_lesson.json   # Knowledge check on another lesson
        """
    )

    parser.add_argument('--setup', action='store_true',
                        help='Configure readcoach (set API key, etc.)')
    parser.add_argument('--clear-key', nargs='?', const='all', metavar='PROVIDER',
                        help='Remove stored API key(s)')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='More log output (-vv for debug)')

    subparsers = parser.add_subparsers(dest='command')

    learn = subparsers.add_parser('learn', help='Start a tutored reading session')
    learn.add_argument('--mode', default='B', type=str.upper, choices=['A', 'B'],
                       help='A: one attempt; B: reflection and retry (default: B)')
    learn.add_argument('-p', '--participant', default='',
                       help='Participant ID for the session log')
    learn.add_argument('--lesson', help='Lesson JSON file (default: bundled sample)')
    learn.add_argument('--minutes', type=float, help='Session length in minutes')
    learn.add_argument('--tutor-url', help='Tutor chat endpoint')
    learn.add_argument('--local', action='store_true',
                       help='Answer with a local model client instead of the tutor service')

    check = subparsers.add_parser('check', help='Take the untutored knowledge check')
    check.add_argument('-p', '--participant', default='',
                       help='Participant ID for the result log')
    check.add_argument('--lesson', help='Lesson JSON file (default: bundled sample)')

    serve = subparsers.add_parser('serve', help='Run the tutor service')
    serve.add_argument('--host', default='127.0.0.1')
    serve.add_argument('--port', type=int, default=8000)
    serve.add_argument('--lesson', help='Ground tutor replies in this lesson\'s passage')
    serve.add_argument('--prompts', help='JSON file overriding prompt templates')
    serve.add_argument('--log-level', default='INFO')

    args = parser.parse_args()

    console = Console()
    level = {0: 'WARNING', 1: 'INFO'}.get(args.verbose, 'DEBUG')
    if args.command == 'serve':
        level = 'DEBUG' if args.verbose > 1 else 'INFO'
    setup_logging(level)

    if args.setup:
        from rich.prompt import Confirm
        from .config import prompt_for_api_key
        from .llm import PROVIDERS, get_preferred_provider, get_api_key_for_provider
        current = get_preferred_provider()
        if current:
            key = get_api_key_for_provider(current) or ''
            console.print(f"Current tutor model: {PROVIDERS[current]['display_name']} (...{key[-8:]})")
            if not Confirm.ask("Replace it?", default=False, console=console):
                return
        prompt_for_api_key(console=console)
        return

    if args.clear_key:
        from .config import clear_api_key
        cleared = clear_api_key(None if args.clear_key == 'all' else args.clear_key)
        if cleared:
            console.print(f"Removed stored keys for: {', '.join(cleared)}")
        else:
            console.print("[dim]No stored keys found.[/dim]")
        return

    from .config import load_settings
    settings = load_settings()

    handlers = {
        'learn': _cmd_learn,
        'check': _cmd_check,
        'serve': _cmd_serve,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return

    handler(args, settings, console)


if __name__ == "__main__":
    main()
