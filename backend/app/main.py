from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.routes import (
    health,
    edit_requests,
    frames,
)
from app.core.config import get_settings
from app.services.edit_requests import close_edit_request_lifecycle, get_edit_request_lifecycle
from app.services.frame_sessions import get_frame_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    print("Edit Desk API starting up...")
    print(f"[STARTUP] Store backend: {settings.store_backend}")
    lifecycle = get_edit_request_lifecycle()
    if not lifecycle.store.check_health():
        print("[STARTUP] Edit request store is not reachable yet")

    yield

    print("Shutting down...")

    # Drop window listeners of frames that were never torn down
    closed = get_frame_registry().close_all()
    if closed:
        print(f"[SHUTDOWN] Closed {closed} frame session(s)")

    close_edit_request_lifecycle()


app = FastAPI(
    title="Edit Desk API",
    description="Client edit requests for embedded WordPress widgets",
    version="0.1.0",
    lifespan=lifespan
)

# Widgets are embedded on arbitrary client sites
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(edit_requests.router, tags=["Edit Requests"])
app.include_router(frames.router, tags=["Frames"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
