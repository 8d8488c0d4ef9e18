"""FastAPI routes for service health and conversation diagnostics."""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from controllers.conversation_controller import conversation_counts, conversation_snapshot, health_status

router = APIRouter()


@router.get("/health")
async def health_route():
	return await health_status()


@router.get("/conversation/{conversation_id}")
async def conversation_route(request: Request, conversation_id: str):
	"""Return the snapshot of an active conversation."""
	try:
		return await conversation_snapshot(request, conversation_id)
	except HTTPException as exc:
		if exc.status_code == 404:
			return JSONResponse(status_code=404, content={"success": False, "message": exc.detail})
		raise
	except Exception:
		return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


@router.get("/active-conversations")
async def active_conversations_route(request: Request):
	try:
		return await conversation_counts(request)
	except Exception:
		return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})
