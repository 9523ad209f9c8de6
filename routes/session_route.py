"""FastAPI routes for stored conversation sessions."""

from fastapi import APIRouter, HTTPException, Request

from controllers.session_controller import list_sessions, load_session, start_new_chat

router = APIRouter(prefix="/sessions")


@router.get("")
async def list_sessions_route(request: Request):
	return list_sessions(request)


@router.post("/new")
async def new_session_route(request: Request):
	return start_new_chat(request)


@router.post("/{session_id}/load")
async def load_session_route(request: Request, session_id: str):
	try:
		return load_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
