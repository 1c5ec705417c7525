import traceback
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from app.api.errors import to_http_exception
from app.core.errors import EditDeskError
from app.schemas.edit_requests import (
    AddReplyRequest,
    CreateEditRequest,
    EditRequest,
    EditRequestListResponse,
    EditRequestSummary,
    SetStatusRequest,
)
from app.services.edit_requests import EditRequestLifecycle, get_edit_request_lifecycle


router = APIRouter(prefix="/v1/edit-requests")


def _unexpected(action: str, e: Exception) -> HTTPException:
    print(f"[EDIT_REQUESTS] Unhandled error while trying to {action}: {e}")
    traceback.print_exc()
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {str(e)}"
    )


@router.post("", response_model=EditRequest, status_code=status.HTTP_201_CREATED)
async def create_edit_request(
    request: CreateEditRequest,
    lifecycle: EditRequestLifecycle = Depends(get_edit_request_lifecycle)
):
    """Client submits feedback for a page/section; starts in `open`"""
    try:
        return lifecycle.create_request(
            page_url=request.page_url,
            section_id=request.section_id,
            message=request.message,
            project_id=request.project_id,
            submitted_by=request.submitted_by
        )
    except EditDeskError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("create edit request", e)


@router.get("", response_model=EditRequestListResponse)
async def list_edit_requests(
    project_id: Optional[str] = Query(None, description="Project scope"),
    page_url: Optional[str] = Query(None, description="Exact page, or 'all'"),
    status_filter: Optional[str] = Query(None, alias="status", description="Exact status, or 'all'"),
    search: Optional[str] = Query(None, description="Text in message or section id"),
    lifecycle: EditRequestLifecycle = Depends(get_edit_request_lifecycle)
):
    """
    List edit requests, newest first.

    `project_id` restricts results to one tenant.
    """
    try:
        requests = lifecycle.list_requests(
            project_id=project_id,
            page_url=page_url,
            status=status_filter,
            search_text=search
        )
        return EditRequestListResponse(requests=requests, total=len(requests))
    except EditDeskError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("list edit requests", e)


@router.get("/summary", response_model=EditRequestSummary)
async def summarize_edit_requests(
    project_id: str = Query(..., description="Project scope"),
    lifecycle: EditRequestLifecycle = Depends(get_edit_request_lifecycle)
):
    try:
        return lifecycle.summarize(project_id)
    except EditDeskError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("summarize edit requests", e)


@router.get("/{request_id}", response_model=EditRequest)
async def get_edit_request(
    request_id: str,
    lifecycle: EditRequestLifecycle = Depends(get_edit_request_lifecycle)
):
    try:
        return lifecycle.get_request(request_id)
    except EditDeskError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("fetch edit request", e)


@router.patch("/{request_id}/status", response_model=EditRequest)
async def set_edit_request_status(
    request_id: str,
    request: SetStatusRequest,
    lifecycle: EditRequestLifecycle = Depends(get_edit_request_lifecycle)
):
    """Designer moves the request to another status (reopening is allowed)"""
    try:
        return lifecycle.set_status(request_id, request.status)
    except EditDeskError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("update status", e)


@router.post("/{request_id}/replies", response_model=EditRequest)
async def add_edit_request_reply(
    request_id: str,
    request: AddReplyRequest,
    lifecycle: EditRequestLifecycle = Depends(get_edit_request_lifecycle)
):
    """Append a reply to the thread; never changes status"""
    try:
        return lifecycle.add_reply(request_id, request.message, request.sender)
    except EditDeskError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise _unexpected("add reply", e)
