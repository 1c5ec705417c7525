"""
Edit-request lifecycle.

Status moves freely between open / in-progress / resolved, only through an
explicit set_status call; nothing here changes status as a side effect.
Replies are append-only and keep insertion order.
"""

from uuid import uuid4
from typing import List, Optional
from app.core.config import get_settings
from app.core.errors import NotFoundError, ValidationError
from app.schemas.edit_requests import (
    ALL_FILTER,
    EDIT_REQUEST_STATUSES,
    EditRequest,
    EditRequestFilter,
    EditRequestSummary,
    Reply,
)
from app.schemas.handshake import USER_ROLES
from app.services.edit_request_store import EditRequestStore, utc_now


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class EditRequestLifecycle:

    def __init__(self, store: EditRequestStore):
        self.store = store

    def create_request(
        self,
        page_url: str,
        section_id: Optional[str],
        message: str,
        project_id: str,
        submitted_by: Optional[str] = None
    ) -> EditRequest:
        """
        Create an edit request in the `open` state with an empty thread.

        Raises ValidationError for an empty message or project id.
        """
        if not message or not message.strip():
            raise ValidationError("Message is required")
        if not project_id or not project_id.strip():
            raise ValidationError("Project ID is required")
        if not page_url or not page_url.strip():
            raise ValidationError("Page URL is required")

        now = utc_now()
        record = EditRequest(
            id=str(uuid4()),
            page_url=page_url.strip(),
            section_id=_clean(section_id),
            message=message,
            status="open",
            project_id=project_id.strip(),
            submitted_by=_clean(submitted_by),
            replies=[],
            created_at=now,
            updated_at=now
        )

        created = self.store.insert(record)
        print(f"[EDIT_REQUESTS] Created {created.id} on {created.page_url} (project {created.project_id})")
        return created

    def list_requests(
        self,
        project_id: Optional[str] = None,
        page_url: Optional[str] = None,
        status: Optional[str] = None,
        search_text: Optional[str] = None
    ) -> List[EditRequest]:
        """
        Requests matching the filters, newest first.

        `project_id` is a hard tenant scope. `page_url`/`status` set to "all"
        or left empty impose no restriction. A blank `project_id` is rejected
        rather than read as "no scope".
        """
        if project_id is not None and not project_id.strip():
            raise ValidationError("Project ID must not be blank")

        filters = EditRequestFilter(
            project_id=_clean(project_id),
            page_url=self._exact(page_url),
            status=self._exact(status),
            search_text=_clean(search_text)
        )
        if filters.status is not None and filters.status not in EDIT_REQUEST_STATUSES:
            raise ValidationError(f"Unknown status '{filters.status}'")

        requests = self.store.select_many(filters)

        # Tenant scope is re-checked regardless of the store
        if filters.project_id is not None:
            requests = [r for r in requests if r.project_id == filters.project_id]
        return requests

    def get_request(self, request_id: str) -> EditRequest:
        request = self.store.select_one(request_id)
        if request is None:
            raise NotFoundError(request_id)
        return request

    def set_status(self, request_id: str, new_status: str) -> EditRequest:
        """Change only status (and updated_at); any state may follow any state"""
        if new_status not in EDIT_REQUEST_STATUSES:
            raise ValidationError(f"Unknown status '{new_status}'")

        updated = self.store.update(request_id, {"status": new_status, "updated_at": utc_now()})
        print(f"[EDIT_REQUESTS] {request_id} -> {new_status}")
        return updated

    def add_reply(self, request_id: str, message: str, sender: str = "designer") -> EditRequest:
        """Append one reply to the thread; status is left alone"""
        if not message or not message.strip():
            raise ValidationError("Reply message is required")
        if sender not in USER_ROLES:
            raise ValidationError(f"Unknown reply author '{sender}'")

        reply = Reply(
            id=str(uuid4()),
            message=message,
            sender=sender,
            timestamp=utc_now()
        )

        updated = self.store.append_reply(request_id, reply)
        print(f"[EDIT_REQUESTS] Reply {reply.id} from {sender} on {request_id} ({len(updated.replies)} total)")
        return updated

    def summarize(self, project_id: str) -> EditRequestSummary:
        """Counters and page list for one project's request board"""
        if not project_id or not project_id.strip():
            raise ValidationError("Project ID is required")

        requests = self.list_requests(project_id=project_id)
        by_status = {status: 0 for status in EDIT_REQUEST_STATUSES}
        page_urls = []
        for request in requests:
            by_status[request.status] += 1
            if request.page_url not in page_urls:
                page_urls.append(request.page_url)

        return EditRequestSummary(
            project_id=project_id.strip(),
            total=len(requests),
            pending=len(requests) - by_status["resolved"],
            by_status=by_status,
            page_urls=sorted(page_urls)
        )

    @staticmethod
    def _exact(value: Optional[str]) -> Optional[str]:
        value = _clean(value)
        if value is None or value == ALL_FILTER:
            return None
        return value


def build_store(settings=None) -> EditRequestStore:
    settings = settings or get_settings()
    if settings.store_backend == "redis":
        from app.services.redis_client import RedisClient
        from app.services.redis_store import RedisEditRequestStore
        return RedisEditRequestStore(RedisClient(settings.redis_url))

    from app.services.db_client import SQLiteEditRequestStore
    return SQLiteEditRequestStore(settings.sqlite_path)


_lifecycle: Optional[EditRequestLifecycle] = None


def get_edit_request_lifecycle() -> EditRequestLifecycle:
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = EditRequestLifecycle(build_store())
    return _lifecycle


def close_edit_request_lifecycle() -> None:
    global _lifecycle
    if _lifecycle is not None:
        _lifecycle.store.close()
        _lifecycle = None
