"""
Persistence collaborator for edit requests.

Stores only need single-record atomic writes plus one atomic append for
replies; read-then-write-the-whole-thread is never used, so two replies
submitted at the same time both survive.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from app.schemas.edit_requests import EditRequest, EditRequestFilter, Reply


# Columns a caller may change after creation
MUTABLE_FIELDS = ("status", "updated_at", "page_url", "section_id", "submitted_by")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(value: datetime) -> str:
    """Fixed-width ISO timestamp so string order equals time order"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def matches_search(request: EditRequest, search_text: Optional[str]) -> bool:
    """Case-insensitive substring match on message or section id"""
    if not search_text:
        return True
    needle = search_text.casefold()
    if needle in request.message.casefold():
        return True
    return bool(request.section_id) and needle in request.section_id.casefold()


def matches_filter(request: EditRequest, filters: EditRequestFilter) -> bool:
    if filters.project_id is not None and request.project_id != filters.project_id:
        return False
    if filters.page_url is not None and request.page_url != filters.page_url:
        return False
    if filters.status is not None and request.status != filters.status:
        return False
    return matches_search(request, filters.search_text)


class EditRequestStore(ABC):

    @abstractmethod
    def insert(self, record: EditRequest) -> EditRequest:
        """Persist a new request"""

    @abstractmethod
    def select_one(self, request_id: str) -> Optional[EditRequest]:
        """Fetch a request with its replies, or None"""

    @abstractmethod
    def select_many(self, filters: EditRequestFilter) -> List[EditRequest]:
        """Requests matching `filters`, newest created_at first"""

    @abstractmethod
    def update(self, request_id: str, fields: Dict[str, Any]) -> EditRequest:
        """Change MUTABLE_FIELDS of one request; raises NotFoundError"""

    @abstractmethod
    def append_reply(self, request_id: str, reply: Reply) -> EditRequest:
        """Atomically append one reply and touch updated_at; raises NotFoundError"""

    def check_health(self) -> bool:
        return True

    def close(self) -> None:
        pass
