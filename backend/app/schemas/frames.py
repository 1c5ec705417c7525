from pydantic import BaseModel, Field
from typing import Optional
from app.schemas.handshake import ProjectContext


class FrameOpenRequest(BaseModel):
    """Request for POST /v1/frames"""

    html: str = Field(..., description="Host page markup the frame is embedded in")
    embedded: bool = Field(True, description="Frame runs inside a host iframe")
    nested: bool = Field(False, description="Host iframe sits inside another frame (portal)")


class FrameSessionResponse(BaseModel):
    """State of one frame session"""

    session_id: str = Field(..., description="Frame session identifier")
    configured: bool = Field(..., description="Whether a project context is active")
    reason: Optional[str] = Field(None, description="Why the frame is not configured")
    context: Optional[ProjectContext] = Field(None, description="Active project context")
    generation: int = Field(0, description="Bumped on every context swap")
    selected_role: Optional[str] = Field(None, description="Role last selected upstream")
    observed: dict[str, list[dict]] = Field(
        default_factory=dict,
        description="Namespaced messages each window has seen, keyed by window name"
    )


class FrameMessageResponse(BaseModel):
    """Response for POST /v1/frames/{id}/messages"""

    context_changed: bool = Field(..., description="Whether the message swapped the context")
    generation: int = Field(..., description="Context generation after delivery")
    context: Optional[ProjectContext] = Field(None, description="Active project context")
