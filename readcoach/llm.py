#!/usr/bin/env python3
"""
Unified LLM client supporting multiple providers.
Provides one interface across Anthropic, OpenAI, and Google Gemini so the
tutor service does not care which model answers.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Generator, Dict, List

from .config import load_config

logger = logging.getLogger(__name__)

# Wire roles used by the tutoring protocol -> chat-completion roles
ROLE_MAP = {
    'learner': 'user',
    'user': 'user',
    'tutor': 'assistant',
    'assistant': 'assistant',
    'bot': 'assistant',
}


def to_provider_messages(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """Map protocol messages onto user/assistant turns, dropping empty ones"""
    converted = []
    for msg in messages:
        content = msg.get('content') or msg.get('text') or ''
        if not content:
            continue
        converted.append({
            'role': ROLE_MAP.get(msg.get('role', 'user'), 'user'),
            'content': content,
        })
    return converted


@dataclass
class LLMResponse:
    """Unified response from any LLM provider"""
    content: str
    model: str
    provider: str
    usage: Optional[Dict[str, int]] = None


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients"""

    provider: str = ''
    model_name: str = ''

    @abstractmethod
    def create(
        self,
        system: str,
        messages: List[Dict[str, str]],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Create a completion"""
        pass

    @abstractmethod
    def stream(
        self,
        system: str,
        messages: List[Dict[str, str]],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> Generator[str, None, None]:
        """Stream a completion fragment by fragment"""
        pass


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client"""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(self, api_key: str, model: str = None):
        from anthropic import Anthropic
        self.client = Anthropic(api_key=api_key)
        self.model_name = model or self.DEFAULT_MODEL
        self.provider = "anthropic"

    def _messages(self, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        # Anthropic rejects an empty turn list; context-only requests send none
        return messages or [{"role": "user", "content": "(no message)"}]

    def create(self, system, messages, max_tokens=1000, temperature=0.7) -> LLMResponse:
        response = self.client.messages.create(
            model=self.model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=self._messages(messages),
        )
        return LLMResponse(
            content=response.content[0].text,
            model=self.model_name,
            provider=self.provider,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            }
        )

    def stream(self, system, messages, max_tokens=1000, temperature=0.7) -> Generator[str, None, None]:
        with self.client.messages.stream(
            model=self.model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=self._messages(messages),
        ) as stream:
            for text in stream.text_stream:
                yield text


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client"""

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(self, api_key: str, model: str = None):
        from openai import OpenAI
        self.client = OpenAI(api_key=api_key)
        self.model_name = model or self.DEFAULT_MODEL
        self.provider = "openai"

    def create(self, system, messages, max_tokens=1000, temperature=0.7) -> LLMResponse:
        response = self.client.chat.completions.create(
            model=self.model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "system", "content": system}] + messages,
        )
        return LLMResponse(
            content=response.choices[0].message.content or '',
            model=self.model_name,
            provider=self.provider,
            usage={
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            } if response.usage else None
        )

    def stream(self, system, messages, max_tokens=1000, temperature=0.7) -> Generator[str, None, None]:
        stream = self.client.chat.completions.create(
            model=self.model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "system", "content": system}] + messages,
            stream=True,
        )
        for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content


class GeminiClient(BaseLLMClient):
    """Google Gemini client"""

    DEFAULT_MODEL = "gemini-1.5-flash"

    def __init__(self, api_key: str, model: str = None):
        import google.generativeai as genai
        genai.configure(api_key=api_key)
        self._genai = genai
        self.model_name = model or self.DEFAULT_MODEL
        self.provider = "gemini"

    def _convert_messages(self, messages: List[Dict[str, str]]) -> List[Dict]:
        """Convert standard messages to Gemini format"""
        return [
            {"role": "user" if msg["role"] == "user" else "model", "parts": [msg["content"]]}
            for msg in messages
        ] or [{"role": "user", "parts": ["(no message)"]}]

    def _generate(self, system, messages, max_tokens, temperature, stream):
        # The system instruction is bound to the model object in this SDK
        model = self._genai.GenerativeModel(self.model_name, system_instruction=system)
        return model.generate_content(
            self._convert_messages(messages),
            generation_config={
                "max_output_tokens": max_tokens,
                "temperature": temperature,
            },
            stream=stream,
        )

    def create(self, system, messages, max_tokens=1000, temperature=0.7) -> LLMResponse:
        response = self._generate(system, messages, max_tokens, temperature, stream=False)
        return LLMResponse(
            content=response.text,
            model=self.model_name,
            provider=self.provider,
        )

    def stream(self, system, messages, max_tokens=1000, temperature=0.7) -> Generator[str, None, None]:
        for chunk in self._generate(system, messages, max_tokens, temperature, stream=True):
            if chunk.text:
                yield chunk.text


# Provider registry
PROVIDERS = {
    "anthropic": {
        "client_class": AnthropicClient,
        "env_var": "ANTHROPIC_API_KEY",
        "config_key": "anthropic_api_key",
        "key_prefix": "sk-ant-",
        "display_name": "Anthropic (Claude)",
        "url": "https://console.anthropic.com/settings/keys",
        "package": "anthropic",
    },
    "openai": {
        "client_class": OpenAIClient,
        "env_var": "OPENAI_API_KEY",
        "config_key": "openai_api_key",
        "key_prefix": "sk-",
        "display_name": "OpenAI (GPT)",
        "url": "https://platform.openai.com/api-keys",
        "package": "openai",
    },
    "gemini": {
        "client_class": GeminiClient,
        "env_var": "GOOGLE_API_KEY",
        "config_key": "gemini_api_key",
        "key_prefix": "AI",
        "display_name": "Google (Gemini)",
        "url": "https://aistudio.google.com/app/apikey",
        "package": "google-generativeai",
    },
}


def get_api_key_for_provider(provider: str) -> Optional[str]:
    """Environment variable first, then the stored key"""
    info = PROVIDERS.get(provider)
    if info is None:
        return None
    return os.getenv(info["env_var"]) or load_config().get(info["config_key"])


def get_available_providers() -> List[str]:
    return [name for name in PROVIDERS if get_api_key_for_provider(name)]


def get_preferred_provider() -> Optional[str]:
    """The configured provider if it still has a key, else the first one that does"""
    preferred = load_config().get("preferred_provider")
    if preferred and get_api_key_for_provider(preferred):
        return preferred
    return next(iter(get_available_providers()), None)


def create_llm_client(
    provider: str = None,
    model: str = None,
) -> Optional[BaseLLMClient]:
    """
    Build the tutor model client.

    Returns None when no provider has a key or the provider SDK cannot start;
    the tutor service then answers chat requests with a 500.
    """
    provider = provider or get_preferred_provider()
    api_key = get_api_key_for_provider(provider) if provider else None
    if not api_key:
        return None

    info = PROVIDERS[provider]
    try:
        return info["client_class"](api_key=api_key, model=model)
    except ImportError:
        logger.warning("%s SDK not installed. Run: pip install %s", provider, info["package"])
    except Exception as e:
        logger.warning("Failed to initialize %s client: %s", provider, e)
    return None
