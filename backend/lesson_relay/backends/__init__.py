from __future__ import annotations
from typing import Optional

import httpx

from ..settings import Settings
from .base import (
	BackendAdapter,
	BackendError,
	BackendRequestError,
	BackendUnavailableError,
	MalformedResponseError,
	UnsupportedOperationError,
)
from .chat import GroqBackend, OpenAIBackend
from .ollama import OllamaBackend

__all__ = [
	"BackendAdapter",
	"BackendError",
	"BackendRequestError",
	"BackendUnavailableError",
	"MalformedResponseError",
	"UnsupportedOperationError",
	"GroqBackend",
	"OllamaBackend",
	"OpenAIBackend",
	"build_backend",
]


def build_backend(settings: Settings, *, client: Optional[httpx.AsyncClient] = None) -> BackendAdapter:
	"""Construct the adapter named by ``settings.llm_backend``."""
	timeouts = dict(
		request_timeout_s=settings.request_timeout_s,
		pull_timeout_s=settings.pull_timeout_s,
		stream_idle_timeout_s=settings.stream_idle_timeout_s,
	)
	kind = settings.llm_backend.strip().lower()
	if kind == "ollama":
		return OllamaBackend(
			settings.ollama_base_url,
			settings.ollama_model,
			pull_blocking=settings.ollama_pull_blocking,
			client=client,
			**timeouts,
		)
	if kind == "openai":
		return OpenAIBackend(
			settings.openai_base_url,
			settings.openai_model,
			api_key=settings.openai_api_key,
			client=client,
			**timeouts,
		)
	if kind == "groq":
		return GroqBackend(
			settings.groq_base_url,
			settings.groq_model,
			api_key=settings.groq_api_key,
			client=client,
			**timeouts,
		)
	raise ValueError(f"LLM_BACKEND must be one of ['groq', 'ollama', 'openai'], got {settings.llm_backend!r}")
