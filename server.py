import logging
from functools import lru_cache
from typing import Optional, Any

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from guestguide.backend import Backend

logger = logging.getLogger("guestguide_backend")

app = FastAPI(title="GuestGuide AI")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for dev
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class Event(BaseModel):
    type: str
    # identity of the signed-in host, resolved by the auth layer in front of us
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    payload: Optional[Any] = None
    # AppState the client got back from its previous event
    state: Optional[dict] = None


@lru_cache
def get_backend() -> Backend:
    return Backend()


@app.post("/events")
def send_event(event: Event, backend: Backend = Depends(get_backend)):
    try:
        return backend.process_request(event.model_dump())
    except Exception as e:
        logger.error(f"Error handling event {event.type}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/guide")
def guest_guide(g: str = Query(..., min_length=1), backend: Backend = Depends(get_backend)):
    """Public entry point behind the QR code: read-only guide by id."""
    response = backend.process_request({"type": "guest_view", "payload": {"id": g}})
    if response["status"] != "success":
        raise HTTPException(status_code=404, detail=response["message"])
    return response["data"]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
