from __future__ import annotations
import json
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx

from ..prompts import CompositePrompt
from .base import BackendAdapter, BackendRequestError, MalformedResponseError


logger = logging.getLogger(__name__)

# Sampling options sent with every generate call
GENERATE_OPTIONS: Dict[str, Any] = {
	"temperature": 0.7,
	"top_p": 0.9,
	"num_predict": 2048,
}


class OllamaBackend(BackendAdapter):
	"""Local generation through an Ollama daemon's ``/api/generate``.

	Streaming responses are newline-delimited JSON records; each record's
	``response`` field is one fragment and a record with ``done`` set ends
	the stream.
	"""

	name = "ollama"
	label = "Ollama"
	supports_pull = True

	def __init__(self, base_url: str, default_model: str, *, pull_blocking: bool = True, **kwargs: Any) -> None:
		super().__init__(base_url, default_model, **kwargs)
		self.pull_blocking = pull_blocking

	def _generate_payload(self, prompt: CompositePrompt, model: Optional[str], *, stream: bool) -> Dict[str, Any]:
		return {
			"model": model or self.default_model,
			"prompt": prompt.text,
			"stream": stream,
			"options": dict(GENERATE_OPTIONS),
		}

	async def complete(self, prompt: CompositePrompt, *, model: Optional[str] = None) -> str:
		payload = self._generate_payload(prompt, model, stream=False)
		try:
			r = await self._client.post(f"{self.base_url}/api/generate", json=payload)
			r.raise_for_status()
		except httpx.HTTPError as err:
			raise self._translate_error(err, "generate completion") from err
		try:
			text = r.json()["response"]
		except (ValueError, KeyError, TypeError) as err:
			raise MalformedResponseError(f"Unexpected Ollama response: {r.text[:500]}") from err
		if not isinstance(text, str):
			raise MalformedResponseError(f"Unexpected Ollama response: {r.text[:500]}")
		return text

	def stream(self, prompt: CompositePrompt, *, model: Optional[str] = None) -> AsyncGenerator[str, None]:
		return self._iter_generate(self._generate_payload(prompt, model, stream=True))

	async def _iter_generate(self, payload: Dict[str, Any]) -> AsyncGenerator[str, None]:
		try:
			async with self._client.stream(
				"POST",
				f"{self.base_url}/api/generate",
				json=payload,
				timeout=self._stream_timeout(),
			) as resp:
				if resp.is_error:
					await resp.aread()
					resp.raise_for_status()
				async for line in resp.aiter_lines():
					line = line.strip()
					if not line:
						continue
					try:
						record = json.loads(line)
					except ValueError:
						logger.warning("Skipping malformed chunk from Ollama: %r", line[:200])
						continue
					if not isinstance(record, dict):
						logger.warning("Skipping non-object chunk from Ollama: %r", line[:200])
						continue
					if record.get("error"):
						raise BackendRequestError(f"Ollama reported an error: {record['error']}")
					fragment = record.get("response")
					if isinstance(fragment, str) and fragment:
						yield fragment
					if record.get("done"):
						return
		except httpx.HTTPError as err:
			raise self._translate_error(err, "stream completion") from err

	async def list_models(self) -> List[Dict[str, Any]]:
		try:
			r = await self._client.get(f"{self.base_url}/api/tags")
			r.raise_for_status()
		except httpx.HTTPError as err:
			raise self._translate_error(err, "list models") from err
		try:
			models = r.json()["models"]
		except (ValueError, KeyError, TypeError) as err:
			raise MalformedResponseError(f"Unexpected Ollama model list: {r.text[:500]}") from err
		return list(models or [])

	async def pull_model(self, name: str) -> Dict[str, Any]:
		# stream=False makes Ollama answer only once the download has finished
		try:
			r = await self._client.post(
				f"{self.base_url}/api/pull",
				json={"model": name, "stream": False},
				timeout=self.pull_timeout_s,
			)
			r.raise_for_status()
		except httpx.HTTPError as err:
			raise self._translate_error(err, f"pull model {name}") from err
		try:
			data = r.json()
		except ValueError:
			data = {}
		if isinstance(data, dict) and data.get("error"):
			raise BackendRequestError(f"Failed to pull model {name}: {data['error']}")
		status = data.get("status") if isinstance(data, dict) else None
		logger.info("Pulled model %s from Ollama (status=%s)", name, status)
		return {"status": status or "success"}
