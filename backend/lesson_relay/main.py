from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .backends import BackendAdapter, build_backend
from .settings import Settings, settings as default_settings
from .routers import health, generate, models

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
	logging.basicConfig(level=settings.log_level.upper())


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
	# Stray task failures are logged; the server keeps running
	exc = context.get("exception")
	logger.error("Unhandled error in background task: %s", context.get("message"), exc_info=exc)


def create_app(settings: Optional[Settings] = None, backend: Optional[BackendAdapter] = None) -> FastAPI:
	settings = settings or default_settings

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
		owned = app.state.backend is None
		if owned:
			configure_logging(settings)
			app.state.backend = build_backend(settings)
		active = app.state.backend
		logger.info(
			"Lesson relay started (backend=%s, base_url=%s, default_model=%s, streaming=%s)",
			active.name, active.base_url, active.default_model, settings.stream_responses,
		)
		yield
		if owned:
			await active.aclose()
			app.state.backend = None
		logger.info("Lesson relay shutting down")

	app = FastAPI(title="Lesson Relay API", version="0.1.0", lifespan=lifespan)
	app.state.settings = settings
	app.state.backend = backend

	app.add_middleware(
		CORSMiddleware,
		allow_origins=settings.cors_origin_list(),
		allow_methods=["*"],
		allow_headers=["*"],
	)

	app.include_router(health.router)
	app.include_router(generate.router)
	app.include_router(models.router)

	@app.exception_handler(Exception)
	async def unhandled_error(request: Request, exc: Exception):
		logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
		return JSONResponse(status_code=500, content={"detail": "Internal server error"})

	return app


app = create_app()


def run() -> None:
	import uvicorn
	configure_logging(default_settings)
	uvicorn.run(app, host=default_settings.host, port=default_settings.port, log_level=default_settings.log_level.lower())


if __name__ == "__main__":
	run()
