from __future__ import annotations
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from fastapi.responses import StreamingResponse

from .backends import BackendError


logger = logging.getLogger(__name__)

SSE_HEADERS: Dict[str, str] = {
	"Cache-Control": "no-cache",
	"Connection": "keep-alive",
	"X-Accel-Buffering": "no",
}


def format_event(payload: Dict[str, Any], event: Optional[str] = None) -> str:
	data = json.dumps(payload, ensure_ascii=False)
	if event:
		return f"event: {event}\ndata: {data}\n\n"
	return f"data: {data}\n\n"


async def relay_fragments(
	fragments: AsyncGenerator[str, None],
	request: Optional[Request] = None,
) -> AsyncGenerator[str, None]:
	"""Frame backend fragments as server-sent events.

	Yields one ``data`` event per fragment, then a terminal ``end`` event on
	natural completion or an ``error`` event if the backend fails mid-stream.
	The HTTP status is already committed by then, so failures are only ever
	reported in-band. If the client goes away the backend stream is closed
	without a terminal event.
	"""
	emitted = 0
	try:
		async for fragment in fragments:
			if request is not None and await request.is_disconnected():
				logger.info("Client disconnected after %d fragments; closing backend stream", emitted)
				return
			yield format_event({"content": fragment})
			emitted += 1
	except BackendError as err:
		logger.warning("Backend failed after %d fragments: %s", emitted, err)
		yield format_event({"error": str(err), "type": err.kind}, event="error")
		return
	except Exception as err:
		logger.exception("Stream relay failed after %d fragments", emitted)
		yield format_event({"error": f"Stream failed: {err}", "type": "internal_error"}, event="error")
		return
	finally:
		await fragments.aclose()
	yield format_event({"message": "Stream completed"}, event="end")


def sse_response(fragments: AsyncGenerator[str, None], request: Optional[Request] = None) -> StreamingResponse:
	return StreamingResponse(
		relay_fragments(fragments, request),
		media_type="text/event-stream",
		headers=SSE_HEADERS,
	)
