import traceback
from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from app.api.errors import to_http_exception
from app.core.errors import EditDeskError
from app.schemas.edit_requests import EditRequestListResponse
from app.schemas.frames import FrameMessageResponse, FrameOpenRequest, FrameSessionResponse
from app.services.edit_requests import EditRequestLifecycle, get_edit_request_lifecycle
from app.services.frame_sessions import FrameSession, FrameSessionRegistry, get_frame_registry


router = APIRouter(prefix="/v1/frames")


def _session_or_404(registry: FrameSessionRegistry, session_id: str) -> FrameSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Frame session {session_id} not found"
        )
    return session


def _describe(session: FrameSession) -> FrameSessionResponse:
    return FrameSessionResponse(
        session_id=session.session_id,
        configured=session.holder.configured,
        reason=session.configuration_error,
        context=session.holder.context,
        generation=session.holder.generation,
        selected_role=session.holder.selected_role,
        observed={name: list(messages) for name, messages in session.observed.items()}
    )


@router.post("", response_model=FrameSessionResponse, status_code=status.HTTP_201_CREATED)
def open_frame(
    request: FrameOpenRequest,
    registry: FrameSessionRegistry = Depends(get_frame_registry)
):
    """
    Run the handshake for a frame embedded in the given host page.
    Runs in the threadpool: the host relay POSTs synchronously.

    A page without a project container still opens a session, in the
    not-configured state.
    """
    try:
        session = registry.open(request.html, embedded=request.embedded, nested=request.nested)
        return _describe(session)
    except Exception as e:
        print(f"[FRAMES] Unhandled error: {e}")
        traceback.print_exc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to open frame: {str(e)}"
        )


@router.get("/{session_id}", response_model=FrameSessionResponse)
async def get_frame(
    session_id: str,
    registry: FrameSessionRegistry = Depends(get_frame_registry)
):
    return _describe(_session_or_404(registry, session_id))


@router.post("/{session_id}/messages", response_model=FrameMessageResponse)
def post_frame_message(
    session_id: str,
    message: Any = Body(..., description="Raw cross-window payload"),
    registry: FrameSessionRegistry = Depends(get_frame_registry)
):
    """
    Deliver a host message to the frame.

    Foreign or malformed payloads are accepted and ignored.
    """
    session = _session_or_404(registry, session_id)
    changed = session.deliver(message)
    return FrameMessageResponse(
        context_changed=changed,
        generation=session.holder.generation,
        context=session.holder.context
    )


@router.get("/{session_id}/edit-requests", response_model=EditRequestListResponse)
async def list_frame_edit_requests(
    session_id: str,
    page_url: Optional[str] = Query(None, description="Exact page, or 'all'"),
    status_filter: Optional[str] = Query(None, alias="status", description="Exact status, or 'all'"),
    search: Optional[str] = Query(None, description="Text in message or section id"),
    registry: FrameSessionRegistry = Depends(get_frame_registry),
    lifecycle: EditRequestLifecycle = Depends(get_edit_request_lifecycle)
):
    """Edit requests of the frame's current project; 409 while not configured"""
    session = _session_or_404(registry, session_id)
    try:
        context = session.holder.require()
        requests = lifecycle.list_requests(
            project_id=context.project_id,
            page_url=page_url,
            status=status_filter,
            search_text=search
        )
        return EditRequestListResponse(requests=requests, total=len(requests))
    except EditDeskError as e:
        raise to_http_exception(e)


@router.delete("/{session_id}")
async def close_frame(
    session_id: str,
    registry: FrameSessionRegistry = Depends(get_frame_registry)
) -> Dict[str, bool]:
    if not registry.close(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Frame session {session_id} not found"
        )
    return {"closed": True}
