import redis
from redis.exceptions import ConnectionError, TimeoutError
from app.core.config import get_settings


class RedisClient:

    def __init__(self, redis_url: str = None, client=None):
        self.redis_url = redis_url or get_settings().redis_url
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if self.redis_url.startswith("rediss://"):
                self._client = redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    socket_timeout=5,
                    socket_connect_timeout=5,
                    ssl_cert_reqs=None
                )
            else:
                self._client = redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    socket_timeout=5,
                    socket_connect_timeout=5
                )
        return self._client

    def check_health(self) -> bool:
        try:
            return self.client.ping()
        except (ConnectionError, TimeoutError):
            return False

    def close(self):
        if self._client:
            self._client.close()
            self._client = None
