from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Mapping

from openai import AzureOpenAI, OpenAI

from coach.errors import ConfigError
from coach.model import PROVIDER_KINDS, ProviderConfig

_LOG = logging.getLogger(__name__)

DEFAULT_MODELS = {
  "anthropic": "claude-sonnet-4-20250514",
  "openai": "gpt-4o",
  "azure": "gpt-4o",
  "ollama": "llama3",
  "custom": "gpt-4o",
}
ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1/"
OLLAMA_DEFAULT_HOST = "http://localhost:11434"
AZURE_API_VERSION = "2024-06-01"

_OPENAI_MODEL_RE = re.compile(r"(^gpt-|^o\d|chatgpt)", re.IGNORECASE)


def normalize_model(kind: str, raw: str | None) -> str:
  model = (raw or "").strip()
  fallback = DEFAULT_MODELS.get(kind, "gpt-4o")
  if not model or model.lower() == "auto":
    return fallback
  # claude models on OpenAI-style providers, gpt models on anthropic
  if kind in ("openai", "custom", "azure") and "claude" in model.lower():
    return fallback
  if kind == "anthropic" and _OPENAI_MODEL_RE.search(model):
    return fallback
  return model


def _first(*values: str | None) -> str:
  for v in values:
    if v:
      return v
  return ""


def resolve_provider(provider: ProviderConfig, env: Mapping[str, str]) -> ProviderConfig:
  """Fill key/endpoint/model from provider-specific environment variables and defaults."""
  kind = provider.kind or "anthropic"
  own_key = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_OPENAI_API_KEY",
    "custom": "OPENAI_API_KEY",
  }.get(kind)
  own_endpoint = {"ollama": "OLLAMA_HOST", "azure": "AZURE_OPENAI_ENDPOINT"}.get(kind)
  return ProviderConfig(
    kind=kind,
    api_key=_first(provider.api_key, env.get("COACH_API_KEY"), env.get(own_key) if own_key else None),
    api_endpoint=_first(provider.api_endpoint, env.get("COACH_API_ENDPOINT"), env.get(own_endpoint) if own_endpoint else None),
    model=normalize_model(kind, _first(provider.model, env.get("COACH_MODEL"))),
  )


@dataclass(frozen=True)
class LLMConfig:
  provider: ProviderConfig
  temperature: float = 0.2
  max_output_tokens: int = 4000


def make_client(provider: ProviderConfig):
  kind = provider.kind
  if kind not in PROVIDER_KINDS:
    raise ConfigError(f"Unknown AI provider: {kind}")
  if kind != "ollama" and not provider.api_key:
    raise ConfigError(f"Missing API key for provider '{kind}' (set COACH_API_KEY or pass --api-key)")
  if kind in ("azure", "custom") and not provider.api_endpoint:
    raise ConfigError(f"Missing API endpoint for provider '{kind}' (set COACH_API_ENDPOINT or pass --api-endpoint)")

  if kind == "openai":
    return OpenAI(api_key=provider.api_key, base_url=provider.api_endpoint or None)
  if kind == "azure":
    return AzureOpenAI(
      api_key=provider.api_key,
      azure_endpoint=provider.api_endpoint,
      api_version=AZURE_API_VERSION,
    )
  if kind == "ollama":
    host = (provider.api_endpoint or OLLAMA_DEFAULT_HOST).rstrip("/")
    if not host.endswith("/v1"):
      host += "/v1"
    return OpenAI(api_key=provider.api_key or "ollama", base_url=host)
  if kind == "custom":
    return OpenAI(api_key=provider.api_key, base_url=provider.api_endpoint)
  return OpenAI(api_key=provider.api_key, base_url=provider.api_endpoint or ANTHROPIC_BASE_URL)


class LLM:
  def __init__(self, cfg: LLMConfig, client=None):
    self.cfg = cfg
    self.client = client if client is not None else make_client(cfg.provider)

  def chat(self, messages: list[dict[str, str]]) -> str:
    resp = self.client.chat.completions.create(
      model=self.cfg.provider.model or DEFAULT_MODELS.get(self.cfg.provider.kind, "gpt-4o"),
      messages=messages,
      temperature=self.cfg.temperature,
      max_tokens=self.cfg.max_output_tokens,
    )
    content = resp.choices[0].message.content if resp.choices else ""
    if not content:
      _LOG.warning("LLM response is empty")
    return content or ""
