from fastapi import APIRouter, Request

from college_notes.core.errors import envelope

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    rid = getattr(request.state, "request_id", None)
    return envelope(data={"status": "ok", "request_id": rid})
