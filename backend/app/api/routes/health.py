from fastapi import APIRouter, Depends
from app.core.config import get_settings
from app.services.edit_requests import EditRequestLifecycle, get_edit_request_lifecycle
from app.services.frame_sessions import FrameSessionRegistry, get_frame_registry

router = APIRouter()


@router.get("/health")
async def health_check(
    lifecycle: EditRequestLifecycle = Depends(get_edit_request_lifecycle),
    registry: FrameSessionRegistry = Depends(get_frame_registry)
):
    """
    Health check endpoint

    Returns status of FastAPI and the edit-request store
    """

    store_status = "ok" if lifecycle.store.check_health() else "down"

    return {
        "status": "ok",
        "services": {
            "fastapi": "ok",
            "store": store_status
        },
        "store_backend": get_settings().store_backend,
        "frame_sessions": len(registry)
    }
