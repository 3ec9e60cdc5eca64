from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel

from ..backends import BackendAdapter, BackendError, UnsupportedOperationError
from ..deps import get_backend

router = APIRouter(prefix="/api", tags=["models"])

logger = logging.getLogger(__name__)


class PullModelRequest(BaseModel):
	model: Optional[str] = None


@router.get("/models")
async def list_models(backend: BackendAdapter = Depends(get_backend)):
	try:
		models = await backend.list_models()
	except BackendError as e:
		raise HTTPException(status_code=500, detail=f"{backend.label} is not running or not accessible: {e}")
	return {"status": f"{backend.label} is running", "backend": backend.name, "models": models}


async def _pull_in_background(backend: BackendAdapter, name: str) -> None:
	try:
		await backend.pull_model(name)
	except BackendError as e:
		logger.error("Background pull of %s failed: %s", name, e)


@router.post("/pullModel")
async def pull_model(
	req: PullModelRequest,
	background_tasks: BackgroundTasks,
	backend: BackendAdapter = Depends(get_backend),
):
	name = (req.model or "").strip()
	if not name:
		raise HTTPException(status_code=400, detail="Model name is required")
	if not backend.supports_pull:
		raise HTTPException(status_code=400, detail=f"{backend.label} does not support pulling models")
	if not backend.pull_blocking:
		background_tasks.add_task(_pull_in_background, backend, name)
		return {"message": f"Model {name} pull initiated", "status": "accepted"}
	try:
		result = await backend.pull_model(name)
	except UnsupportedOperationError as e:
		raise HTTPException(status_code=400, detail=str(e))
	except BackendError as e:
		raise HTTPException(status_code=500, detail=f"Failed to pull model {name}: {e}")
	return {"message": f"Model {name} pulled", "status": result.get("status", "success")}
