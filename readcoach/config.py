#!/usr/bin/env python3
"""
Configuration management for readcoach.
Handles API keys, service URLs and session preferences with local storage.
"""

import os
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from getpass import getpass

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt


DEFAULT_TUTOR_URL = 'http://127.0.0.1:8000/api/chat'
DEFAULT_LOG_URL = 'http://127.0.0.1:8000/api/log'
DEFAULT_SESSION_MINUTES = 20
DEFAULT_LANGUAGE = 'English'


def get_config_dir() -> Path:
    """Get the readcoach config directory (~/.readcoach)"""
    config_dir = Path.home() / '.readcoach'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path"""
    return get_config_dir() / 'config.json'


def load_config() -> Dict[str, Any]:
    """Load configuration from file"""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file"""
    config_path = get_config_path()
    with open(config_path, 'w') as f:
        json.dump(config, f, indent=2)
    # Secure the file (read/write only for owner)
    config_path.chmod(0o600)


@dataclass
class Settings:
    """Resolved runtime settings (environment first, then config file, then defaults)"""
    tutor_url: str = DEFAULT_TUTOR_URL
    log_url: str = DEFAULT_LOG_URL
    session_minutes: float = DEFAULT_SESSION_MINUTES
    language: str = DEFAULT_LANGUAGE
    db_path: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None


def _resolve(env_var: str, config_key: str, config: Dict[str, Any], default: Any) -> Any:
    value = os.getenv(env_var)
    if value:
        return value
    return config.get(config_key, default)


def load_settings() -> Settings:
    """
    Build Settings from the environment and ~/.readcoach/config.json.

    Environment variables:
        READCOACH_TUTOR_URL, READCOACH_LOG_URL, READCOACH_SESSION_MINUTES,
        READCOACH_LANGUAGE, READCOACH_DB_PATH, READCOACH_MODEL
    """
    config = load_config()

    minutes = _resolve('READCOACH_SESSION_MINUTES', 'session_minutes', config, DEFAULT_SESSION_MINUTES)
    try:
        minutes = float(minutes)
    except (TypeError, ValueError):
        minutes = DEFAULT_SESSION_MINUTES

    return Settings(
        tutor_url=_resolve('READCOACH_TUTOR_URL', 'tutor_url', config, DEFAULT_TUTOR_URL),
        log_url=_resolve('READCOACH_LOG_URL', 'log_url', config, DEFAULT_LOG_URL),
        session_minutes=minutes,
        language=_resolve('READCOACH_LANGUAGE', 'language', config, DEFAULT_LANGUAGE),
        db_path=_resolve('READCOACH_DB_PATH', 'db_path', config, None),
        model=_resolve('READCOACH_MODEL', 'model', config, None),
        provider=config.get('preferred_provider'),
    )


def prompt_for_api_key(provider: Optional[str] = None, console: Optional[Console] = None) -> Optional[str]:
    """
    Ask for a tutor model key and store it as the preferred provider.

    Only the tutor service (or `readcoach learn --local`) needs a key; the
    terminal session itself talks to the service over HTTP.
    """
    from .llm import PROVIDERS

    console = console or Console()
    console.print(Panel("Tutor model key setup", style="cyan"))

    names = list(PROVIDERS)
    if provider is None:
        for number, name in enumerate(names, 1):
            console.print(f"  {number}. {PROVIDERS[name]['display_name']}")
        try:
            choice = IntPrompt.ask("Provider", default=1, console=console)
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Cancelled.[/dim]")
            return None
        if not 1 <= choice <= len(names):
            console.print("[red]Invalid choice.[/red]")
            return None
        provider = names[choice - 1]

    info = PROVIDERS[provider]
    console.print(f"Keys for {info['display_name']}: [link]{info['url']}[/link]")

    try:
        api_key = getpass("API key (hidden): ").strip()
        if not api_key:
            console.print("[yellow]No key entered; the tutor service will reply with fallbacks.[/yellow]")
            return None

        if not api_key.startswith(info['key_prefix']) and not Confirm.ask(
            f"Key does not start with '{info['key_prefix']}'. Keep it?", default=False, console=console
        ):
            return None

        config = load_config()
        config[info['config_key']] = api_key
        config['preferred_provider'] = provider
        save_config(config)
        console.print(f"[green]Saved.[/green] {info['display_name']} is now the tutor model.")
        return api_key

    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Cancelled.[/dim]")
        return None


def clear_api_key(provider: Optional[str] = None) -> List[str]:
    """Drop stored keys (one provider, or all of them); returns the providers cleared"""
    from .llm import PROVIDERS

    targets = [provider] if provider else list(PROVIDERS)
    config = load_config()
    cleared = [p for p in targets if p in PROVIDERS and config.pop(PROVIDERS[p]['config_key'], None)]
    if cleared:
        if config.get('preferred_provider') in cleared:
            config.pop('preferred_provider')
        save_config(config)
    return cleared
