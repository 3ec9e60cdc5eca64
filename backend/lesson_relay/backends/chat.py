from __future__ import annotations
import json
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx

from ..prompts import CompositePrompt
from .base import BackendAdapter, BackendRequestError, MalformedResponseError


logger = logging.getLogger(__name__)


class ChatCompletionsBackend(BackendAdapter):
	"""Backend speaking the OpenAI ``/chat/completions`` protocol.

	Blocking calls send the composite prompt as a single user message.
	Streaming calls send the instruction as the system message and the
	subject as the user message, then relay each non-empty
	``choices[0].delta.content`` as a fragment.
	"""

	api_key_env = "API_KEY"

	def __init__(self, base_url: str, default_model: str, *, api_key: Optional[str] = None, **kwargs: Any) -> None:
		super().__init__(base_url, default_model, **kwargs)
		self.api_key = api_key

	def _headers(self) -> Dict[str, str]:
		if not self.api_key:
			raise BackendRequestError(f"{self.api_key_env} is not configured")
		return {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}

	async def complete(self, prompt: CompositePrompt, *, model: Optional[str] = None) -> str:
		headers = self._headers()
		payload: Dict[str, Any] = {
			"model": model or self.default_model,
			"messages": [{"role": "user", "content": prompt.text}],
		}
		try:
			r = await self._client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPError as err:
			raise self._translate_error(err, "generate completion") from err
		try:
			content = r.json()["choices"][0]["message"]["content"]
		except (ValueError, KeyError, IndexError, TypeError) as err:
			raise MalformedResponseError(f"Unexpected {self.label} response: {r.text[:500]}") from err
		if not isinstance(content, str):
			raise MalformedResponseError(f"Unexpected {self.label} response: {r.text[:500]}")
		return content

	def stream(self, prompt: CompositePrompt, *, model: Optional[str] = None) -> AsyncGenerator[str, None]:
		headers = self._headers()
		payload: Dict[str, Any] = {
			"model": model or self.default_model,
			"messages": [
				{"role": "system", "content": prompt.instruction},
				{"role": "user", "content": prompt.subject},
			],
			"stream": True,
		}
		return self._iter_deltas(headers, payload)

	async def _iter_deltas(self, headers: Dict[str, str], payload: Dict[str, Any]) -> AsyncGenerator[str, None]:
		try:
			async with self._client.stream(
				"POST",
				f"{self.base_url}/chat/completions",
				headers=headers,
				json=payload,
				timeout=self._stream_timeout(),
			) as resp:
				if resp.is_error:
					await resp.aread()
					resp.raise_for_status()
				async for line in resp.aiter_lines():
					line = line.strip()
					if not line.startswith("data:"):
						continue
					data = line[len("data:"):].strip()
					if data == "[DONE]":
						return
					try:
						chunk = json.loads(data)
					except ValueError:
						logger.warning("Skipping malformed chunk from %s: %r", self.label, data[:200])
						continue
					if not isinstance(chunk, dict):
						logger.warning("Skipping non-object chunk from %s: %r", self.label, data[:200])
						continue
					if chunk.get("error"):
						raise BackendRequestError(f"{self.label} reported an error: {chunk['error']}")
					fragment = _delta_content(chunk)
					if fragment:
						yield fragment
		except httpx.HTTPError as err:
			raise self._translate_error(err, "stream completion") from err

	async def list_models(self) -> List[Dict[str, Any]]:
		headers = self._headers()
		try:
			r = await self._client.get(f"{self.base_url}/models", headers=headers)
			r.raise_for_status()
		except httpx.HTTPError as err:
			raise self._translate_error(err, "list models") from err
		try:
			models = r.json()["data"]
		except (ValueError, KeyError, TypeError) as err:
			raise MalformedResponseError(f"Unexpected {self.label} model list: {r.text[:500]}") from err
		return list(models or [])


def _delta_content(chunk: Dict[str, Any]) -> Optional[str]:
	choices = chunk.get("choices") or []
	if not choices or not isinstance(choices[0], dict):
		return None
	delta = choices[0].get("delta") or {}
	content = delta.get("content") if isinstance(delta, dict) else None
	return content if isinstance(content, str) else None


class OpenAIBackend(ChatCompletionsBackend):
	name = "openai"
	label = "OpenAI"
	api_key_env = "OPENAI_API_KEY"


class GroqBackend(ChatCompletionsBackend):
	name = "groq"
	label = "Groq"
	api_key_env = "GROQ_API_KEY"
