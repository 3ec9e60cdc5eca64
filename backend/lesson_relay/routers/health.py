from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..backends import BackendAdapter, BackendError
from ..deps import get_backend

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(backend: BackendAdapter = Depends(get_backend)):
	try:
		models = await backend.list_models()
	except BackendError as e:
		return JSONResponse(
			status_code=500,
			content={
				"status": f"Server running but {backend.label} not accessible",
				"backend": backend.name,
				"base_url": backend.base_url,
				"error": str(e),
			},
		)
	return {
		"status": f"Server and {backend.label} are running",
		"backend": backend.name,
		"base_url": backend.base_url,
		"default_model": backend.default_model,
		"available_models": len(models),
	}
