from typing import Any, Dict, List, Optional
from redis.exceptions import RedisError
from app.core.errors import NotFoundError, PersistenceError
from app.schemas.edit_requests import EditRequest, EditRequestFilter, Reply
from app.services.edit_request_store import (
    EditRequestStore,
    MUTABLE_FIELDS,
    format_ts,
    matches_filter,
    parse_ts,
)
from app.services.redis_client import RedisClient


class RedisEditRequestStore(EditRequestStore):
    """
    Edit requests in Redis.

    Redis keys:
    - edit_request:{id} (hash with request fields)
    - edit_request:{id}:replies (list of reply JSON, RPUSH only)
    - edit_requests:index (zset of ids scored by created_at)
    - edit_requests:project:{project_id} (zset of ids scored by created_at)
    """

    def __init__(self, redis_client: RedisClient):
        self.redis = redis_client

    @property
    def client(self):
        return self.redis.client

    @staticmethod
    def _request_key(request_id: str) -> str:
        return f"edit_request:{request_id}"

    @staticmethod
    def _replies_key(request_id: str) -> str:
        return f"edit_request:{request_id}:replies"

    @staticmethod
    def _project_index_key(project_id: str) -> str:
        return f"edit_requests:project:{project_id}"

    def insert(self, record: EditRequest) -> EditRequest:
        score = record.created_at.timestamp()
        mapping = {
            "id": record.id,
            "project_id": record.project_id,
            "page_url": record.page_url,
            "section_id": record.section_id or "",
            "message": record.message,
            "status": record.status,
            "submitted_by": record.submitted_by or "",
            "created_at": format_ts(record.created_at),
            "updated_at": format_ts(record.updated_at)
        }

        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.hset(self._request_key(record.id), mapping=mapping)
            if record.replies:
                pipe.rpush(
                    self._replies_key(record.id),
                    *[reply.model_dump_json(by_alias=True) for reply in record.replies]
                )
            pipe.zadd("edit_requests:index", {record.id: score})
            pipe.zadd(self._project_index_key(record.project_id), {record.id: score})
            pipe.execute()
        except RedisError as e:
            raise PersistenceError(f"Redis insert failed: {e}") from e

        print(f"[STORE] Saved edit request {record.id} for project {record.project_id}")
        return self.select_one(record.id)

    def select_one(self, request_id: str) -> Optional[EditRequest]:
        requests = self._load([request_id])
        return requests[0] if requests else None

    def select_many(self, filters: EditRequestFilter) -> List[EditRequest]:
        index_key = "edit_requests:index"
        if filters.project_id is not None:
            index_key = self._project_index_key(filters.project_id)

        try:
            ids = self.client.zrevrange(index_key, 0, -1)
        except RedisError as e:
            raise PersistenceError(f"Redis read failed: {e}") from e

        return [r for r in self._load(ids) if matches_filter(r, filters)]

    def update(self, request_id: str, fields: Dict[str, Any]) -> EditRequest:
        changes = {}
        for column, value in fields.items():
            if column not in MUTABLE_FIELDS:
                continue
            if column == "updated_at":
                value = format_ts(value)
            changes[column] = "" if value is None else value

        try:
            if not self.client.exists(self._request_key(request_id)):
                raise NotFoundError(request_id)
            if changes:
                self.client.hset(self._request_key(request_id), mapping=changes)
        except RedisError as e:
            raise PersistenceError(f"Redis update failed: {e}") from e

        return self.select_one(request_id)

    def append_reply(self, request_id: str, reply: Reply) -> EditRequest:
        try:
            if not self.client.exists(self._request_key(request_id)):
                raise NotFoundError(request_id)

            # RPUSH is atomic: concurrent appenders never overwrite each other
            pipe = self.client.pipeline(transaction=True)
            pipe.rpush(self._replies_key(request_id), reply.model_dump_json(by_alias=True))
            pipe.hset(self._request_key(request_id), "updated_at", format_ts(reply.timestamp))
            pipe.execute()
        except RedisError as e:
            raise PersistenceError(f"Redis append failed: {e}") from e

        return self.select_one(request_id)

    def check_health(self) -> bool:
        return self.redis.check_health()

    def close(self):
        self.redis.close()

    def _load(self, ids: List[str]) -> List[EditRequest]:
        if not ids:
            return []

        try:
            pipe = self.client.pipeline(transaction=False)
            for request_id in ids:
                pipe.hgetall(self._request_key(request_id))
                pipe.lrange(self._replies_key(request_id), 0, -1)
            results = pipe.execute()
        except RedisError as e:
            raise PersistenceError(f"Redis read failed: {e}") from e

        requests = []
        for i in range(0, len(results), 2):
            data, raw_replies = results[i], results[i + 1]
            if not data:
                continue
            requests.append(EditRequest(
                id=data["id"],
                page_url=data["page_url"],
                section_id=data.get("section_id") or None,
                message=data["message"],
                status=data["status"],
                project_id=data["project_id"],
                submitted_by=data.get("submitted_by") or None,
                replies=[Reply.model_validate_json(r) for r in raw_replies],
                created_at=parse_ts(data["created_at"]),
                updated_at=parse_ts(data["updated_at"])
            ))
        return requests
