"""Shared fixtures: a recording stub backend and a test client wired to it"""
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from lesson_relay.backends import BackendAdapter
from lesson_relay.main import create_app
from lesson_relay.settings import Settings


class StubBackend(BackendAdapter):
    """Deterministic backend that records every call instead of doing I/O"""

    name = "stub"
    label = "Stub"
    supports_pull = True

    def __init__(
        self,
        text: str = "T",
        fragments: Optional[List[str]] = None,
        error: Optional[Exception] = None,
        stream_error: Optional[Exception] = None,
        eager_stream_error: Optional[Exception] = None,
        models: Optional[List[Dict[str, Any]]] = None,
    ):
        # No HTTP client; nothing here touches the network
        self.base_url = "http://stub.local"
        self.default_model = "stub-model"
        self.text = text
        self.fragments = fragments if fragments is not None else ["Hel", "lo"]
        self.error = error
        self.stream_error = stream_error
        self.eager_stream_error = eager_stream_error
        self.models = models if models is not None else [{"name": "stub-model"}]
        self.calls: List[Tuple[str, Any, Any]] = []
        self.pulled: List[str] = []
        self.stream_closed = False

    async def complete(self, prompt, *, model=None):
        self.calls.append(("complete", prompt, model))
        if self.error:
            raise self.error
        return self.text

    def stream(self, prompt, *, model=None):
        self.calls.append(("stream", prompt, model))
        if self.eager_stream_error:
            raise self.eager_stream_error
        return self._iter()

    async def _iter(self):
        try:
            for fragment in self.fragments:
                yield fragment
            if self.stream_error:
                raise self.stream_error
        finally:
            self.stream_closed = True

    async def list_models(self):
        self.calls.append(("list_models", None, None))
        if self.error:
            raise self.error
        return self.models

    async def pull_model(self, name):
        self.calls.append(("pull_model", name, None))
        if self.error:
            raise self.error
        self.pulled.append(name)
        return {"status": "success"}

    async def aclose(self):
        pass


def parse_sse(body: str) -> List[Tuple[str, Dict[str, Any]]]:
    """Split an SSE body into (event name, decoded data) pairs"""
    events = []
    for block in body.split("\n\n"):
        if not block.strip():
            continue
        event = "message"
        data = None
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data = json.loads(line[len("data: "):])
        events.append((event, data))
    return events


@pytest.fixture
def stub_backend():
    return StubBackend()


@pytest.fixture
def make_client():
    """Build a TestClient around a given backend and settings"""
    clients = []

    def _make(backend, settings=None, **client_kwargs):
        app = create_app(settings=settings or Settings(_env_file=None, STREAM_RESPONSES=False), backend=backend)
        client = TestClient(app, **client_kwargs)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, stub_backend):
    return make_client(stub_backend)
