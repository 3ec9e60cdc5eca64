from __future__ import annotations
from fastapi import Request

from .backends import BackendAdapter
from .settings import Settings


def get_backend(request: Request) -> BackendAdapter:
	return request.app.state.backend


def get_settings(request: Request) -> Settings:
	return request.app.state.settings
