from __future__ import annotations
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx

from ..prompts import CompositePrompt


logger = logging.getLogger(__name__)


class BackendError(Exception):
	"""Base class for failures talking to an LLM backend."""

	kind = "backend_error"


class BackendUnavailableError(BackendError):
	kind = "backend_unavailable"


class BackendRequestError(BackendError):
	kind = "backend_request_failed"


class MalformedResponseError(BackendError):
	kind = "malformed_response"


class UnsupportedOperationError(BackendError):
	kind = "unsupported_operation"


class BackendAdapter:
	"""Common surface of every backend.

	``complete`` returns the whole generated text. ``stream`` checks its
	preconditions eagerly and returns a lazy async generator of text
	fragments; closing that generator releases the backend connection.
	"""

	name = "backend"
	label = "Backend"
	supports_pull = False
	# Only meaningful when supports_pull is set
	pull_blocking = True

	def __init__(
		self,
		base_url: str,
		default_model: str,
		*,
		client: Optional[httpx.AsyncClient] = None,
		request_timeout_s: float = 60,
		pull_timeout_s: float = 300,
		stream_idle_timeout_s: float = 120,
	) -> None:
		self.base_url = base_url.rstrip("/")
		self.default_model = default_model
		self.request_timeout_s = request_timeout_s
		self.pull_timeout_s = pull_timeout_s
		self.stream_idle_timeout_s = stream_idle_timeout_s
		self._client = client or httpx.AsyncClient(timeout=request_timeout_s)

	def _stream_timeout(self) -> httpx.Timeout:
		# No bound on total duration; each read waits at most the idle timeout.
		return httpx.Timeout(self.request_timeout_s, read=self.stream_idle_timeout_s)

	async def complete(self, prompt: CompositePrompt, *, model: Optional[str] = None) -> str:
		raise NotImplementedError

	def stream(self, prompt: CompositePrompt, *, model: Optional[str] = None) -> AsyncGenerator[str, None]:
		raise NotImplementedError

	async def list_models(self) -> List[Dict[str, Any]]:
		raise NotImplementedError

	async def pull_model(self, name: str) -> Dict[str, Any]:
		raise UnsupportedOperationError(f"{self.label} does not support pulling models")

	async def aclose(self) -> None:
		await self._client.aclose()

	def _translate_error(self, err: Exception, action: str) -> BackendError:
		if isinstance(err, BackendError):
			return err
		if isinstance(err, httpx.ConnectError):
			logger.error("%s unreachable at %s: %s", self.label, self.base_url, err)
			return BackendUnavailableError(
				f"Cannot connect to {self.label} at {self.base_url}. Make sure {self.label} is running and reachable"
			)
		if isinstance(err, httpx.TimeoutException):
			logger.error("%s timed out while trying to %s", self.label, action)
			return BackendRequestError(f"{self.label} timed out while trying to {action}")
		if isinstance(err, httpx.HTTPStatusError):
			status = err.response.status_code
			try:
				body = err.response.text
			except httpx.ResponseNotRead:
				body = ""
			logger.error("%s returned HTTP %s while trying to %s: %s", self.label, status, action, body)
			return BackendRequestError(f"Failed to {action}: {self.label} returned HTTP {status} {body}".rstrip())
		logger.error("%s request failed while trying to %s: %s", self.label, action, err)
		return BackendRequestError(f"Failed to {action}: {err}")
