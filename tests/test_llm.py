from __future__ import annotations

from types import SimpleNamespace

import pytest
from openai import AzureOpenAI

from coach.errors import ConfigError
from coach.llm import ANTHROPIC_BASE_URL, LLM, LLMConfig, make_client, normalize_model, resolve_provider
from coach.model import ProviderConfig


@pytest.mark.parametrize("kind,raw,expected", [
  ("openai", None, "gpt-4o"),
  ("openai", "auto", "gpt-4o"),
  ("openai", "claude-3-opus", "gpt-4o"),
  ("anthropic", "gpt-4o", "claude-sonnet-4-20250514"),
  ("anthropic", "claude-3-5-haiku-latest", "claude-3-5-haiku-latest"),
  ("ollama", "", "llama3"),
  ("ollama", "qwen2.5-coder", "qwen2.5-coder"),
])
def test_normalize_model(kind, raw, expected) -> None:
  assert normalize_model(kind, raw) == expected


def test_resolve_provider_falls_back_to_vendor_env_vars() -> None:
  env = {"OPENAI_API_KEY": "sk-vendor", "COACH_MODEL": "gpt-4.1"}

  p = resolve_provider(ProviderConfig(kind="openai"), env)

  assert p.api_key == "sk-vendor"
  assert p.model == "gpt-4.1"


def test_resolve_provider_prefers_explicit_values() -> None:
  env = {"COACH_API_KEY": "env", "ANTHROPIC_API_KEY": "vendor"}

  p = resolve_provider(ProviderConfig(kind="anthropic", api_key="explicit"), env)

  assert p.api_key == "explicit"
  assert p.model == "claude-sonnet-4-20250514"


def test_missing_key_or_endpoint_is_config_error() -> None:
  with pytest.raises(ConfigError, match="Missing API key"):
    make_client(ProviderConfig(kind="openai"))
  with pytest.raises(ConfigError, match="Missing API endpoint"):
    make_client(ProviderConfig(kind="custom", api_key="k"))


def test_clients_point_at_provider_endpoints() -> None:
  anthropic = make_client(ProviderConfig(kind="anthropic", api_key="k"))
  ollama = make_client(ProviderConfig(kind="ollama", api_endpoint="http://gpu:11434/"))
  azure = make_client(ProviderConfig(kind="azure", api_key="k", api_endpoint="https://res.openai.azure.com"))

  assert str(anthropic.base_url).rstrip("/") == ANTHROPIC_BASE_URL.rstrip("/")
  assert str(ollama.base_url).rstrip("/") == "http://gpu:11434/v1"
  assert isinstance(azure, AzureOpenAI)


class _Completions:
  def __init__(self, content):
    self.content = content
    self.kwargs = None

  def create(self, **kwargs):
    self.kwargs = kwargs
    choices = [SimpleNamespace(message=SimpleNamespace(content=self.content))]
    return SimpleNamespace(choices=choices)


def test_chat_sends_model_and_returns_text() -> None:
  completions = _Completions("hello")
  client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
  llm = LLM(LLMConfig(provider=ProviderConfig(kind="openai", model="gpt-4o-mini")), client=client)

  assert llm.chat([{"role": "user", "content": "hi"}]) == "hello"
  assert completions.kwargs["model"] == "gpt-4o-mini"
  assert completions.kwargs["temperature"] == 0.2


def test_chat_empty_content_is_empty_string() -> None:
  client = SimpleNamespace(chat=SimpleNamespace(completions=_Completions(None)))
  llm = LLM(LLMConfig(provider=ProviderConfig(kind="ollama")), client=client)

  assert llm.chat([]) == ""


def test_unknown_kind_never_falls_back_to_a_default_client() -> None:
  with pytest.raises(ConfigError, match="Unknown AI provider: opneai"):
    make_client(ProviderConfig(kind="opneai", api_key="sk-openai"))
