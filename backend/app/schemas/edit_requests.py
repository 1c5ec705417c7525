from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict
from typing import Literal, Optional


EditRequestStatus = Literal["open", "in-progress", "resolved"]
ReplyAuthor = Literal["client", "designer"]

EDIT_REQUEST_STATUSES: tuple[str, ...] = ("open", "in-progress", "resolved")

# Filter value that disables the page/status restriction
ALL_FILTER = "all"


class Reply(BaseModel):
    """Single entry in an edit request's conversation thread"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Reply identifier (generated at append time)")
    message: str = Field(..., min_length=1, description="Reply text")
    sender: ReplyAuthor = Field(..., alias="from", description="Who wrote the reply")
    timestamp: datetime = Field(..., description="When the reply was appended")


class EditRequest(BaseModel):
    """Client feedback item tied to a page/section"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Edit request identifier")
    page_url: str = Field(..., description="Page the feedback refers to")
    section_id: Optional[str] = Field(None, description="Section on the page, if any")
    message: str = Field(..., description="Original client message")
    status: EditRequestStatus = Field("open", description="Lifecycle status")
    project_id: str = Field(..., min_length=1, description="Tenant the request belongs to")
    submitted_by: Optional[str] = Field(None, description="Email or display name of the author")
    replies: list[Reply] = Field(default_factory=list, description="Replies in chronological order")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class EditRequestFilter(BaseModel):
    """Filters accepted by list_requests"""

    project_id: Optional[str] = None
    page_url: Optional[str] = None
    status: Optional[str] = None
    search_text: Optional[str] = None


class CreateEditRequest(BaseModel):
    """Request for POST /v1/edit-requests"""

    page_url: str = Field(..., min_length=1, description="Page the feedback refers to")
    section_id: Optional[str] = Field(None, description="Section on the page")
    message: str = Field(..., description="Client message")
    project_id: str = Field(..., description="Project identifier")
    submitted_by: Optional[str] = Field(None, description="Email or display name")


class SetStatusRequest(BaseModel):
    """Request for PATCH /v1/edit-requests/{id}/status"""

    status: EditRequestStatus = Field(..., description="New status")


class AddReplyRequest(BaseModel):
    """Request for POST /v1/edit-requests/{id}/replies"""

    message: str = Field(..., description="Reply text")
    sender: ReplyAuthor = Field("designer", alias="from", description="Reply author")

    model_config = ConfigDict(populate_by_name=True)


class EditRequestListResponse(BaseModel):
    """Response for list endpoints"""

    requests: list[EditRequest] = Field(..., description="Matching edit requests, newest first")
    total: int = Field(..., description="Total count")


class EditRequestSummary(BaseModel):
    """Per-project counters shown above the request list"""

    project_id: str = Field(..., description="Project identifier")
    total: int = Field(0, description="All requests in the project")
    pending: int = Field(0, description="Requests not yet resolved")
    by_status: dict[str, int] = Field(default_factory=dict, description="Count per status")
    page_urls: list[str] = Field(default_factory=list, description="Distinct pages with feedback")
