"""
Frame Sessions

One session per embedded frame load: the window hierarchy (host, optional
portal, frame), the resolver, and the context holder fed by the resolver's
listener. Sessions live in process memory; they are torn down explicitly or
evicted once idle for longer than the registry's session TTL.
"""

import threading
import time
from collections import deque
from uuid import uuid4
from typing import Any, Deque, Dict, List, Optional
from app.core.config import get_settings
from app.core.errors import ConfigurationError
from app.schemas.handshake import is_namespaced
from app.services.frame_window import FrameWindow
from app.services.handshake import HandshakeResolver
from app.services.host_document import HostDocument
from app.services.host_relay import HostRelay, get_host_relay
from app.services.project_context import ProjectContextHolder


class FrameSession:

    def __init__(
        self,
        session_id: str,
        frame: FrameWindow,
        namespace: str,
        relay: Optional[HostRelay] = None,
        observed_limit: int = 200
    ):
        self.session_id = session_id
        self.frame = frame
        self.namespace = namespace
        self.relay = relay
        self.holder = ProjectContextHolder(namespace=namespace)
        self.configuration_error: Optional[str] = None
        self.observed_limit = observed_limit
        self.observed: Dict[str, Deque[dict]] = {}
        self.last_seen = time.time()
        self._recorders = []
        self._unsubscribe = None

        for window in self.windows():
            self._attach_recorder(window)

    def windows(self) -> List[FrameWindow]:
        """Frame first, then its ancestors up to the top window"""
        chain = []
        window = self.frame
        while window is not None:
            chain.append(window)
            window = window.parent
        return chain

    def start(self, document: HostDocument) -> None:
        resolver = HandshakeResolver(document, self.frame, self.namespace)
        try:
            self.holder.replace(resolver.resolve())
        except ConfigurationError as e:
            # Frame stays up in the "not configured" state until a config update arrives
            self.configuration_error = e.reason
            print(f"[FRAMES] Session {self.session_id} not configured: {e}")

        self._unsubscribe = resolver.listen(self.holder.handle_message)

    def deliver(self, message: Any) -> bool:
        """Post an inbound host message to the frame; True when the context changed"""
        self.touch()
        generation = self.holder.generation
        self.frame.post_message(message)
        changed = self.holder.generation != generation
        if changed:
            self.configuration_error = None
        return changed

    def touch(self) -> None:
        self.last_seen = time.time()

    def expired(self, ttl: float, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now - self.last_seen > ttl

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for window, recorder in self._recorders:
            window.remove_listener(recorder)
        self._recorders = []

    def _attach_recorder(self, window: FrameWindow) -> None:
        # Oldest messages drop off once the window's buffer is full
        received = self.observed.setdefault(window.name, deque(maxlen=self.observed_limit))
        relay_to_host = self.relay is not None and window.parent is None and window is not self.frame

        def recorder(data: Any) -> None:
            if not is_namespaced(data, self.namespace):
                return
            received.append(data)
            if relay_to_host:
                self.relay.publish(self.session_id, data)

        window.add_listener(recorder)
        self._recorders.append((window, recorder))


class FrameSessionRegistry:

    def __init__(
        self,
        namespace: str = "lef",
        relay: Optional[HostRelay] = None,
        session_ttl: int = 1800,
        observed_limit: int = 200
    ):
        self.namespace = namespace
        self.relay = relay
        self.session_ttl = session_ttl
        self.observed_limit = observed_limit
        self._sessions: Dict[str, FrameSession] = {}
        self._lock = threading.Lock()

    def open(self, html: str, embedded: bool = True, nested: bool = False) -> FrameSession:
        """Build the windows for a frame load and run the handshake"""
        session_id = str(uuid4())
        frame = self._build_windows(embedded, nested)
        relay = self.relay if self.relay is not None and self.relay.enabled else None

        self.evict_expired()

        session = FrameSession(session_id, frame, self.namespace, relay, self.observed_limit)
        session.start(HostDocument.parse(html))

        with self._lock:
            self._sessions[session_id] = session

        print(f"[FRAMES] Opened session {session_id} (windows={[w.name for w in session.windows()]})")
        return session

    def get(self, session_id: str) -> Optional[FrameSession]:
        self.evict_expired()
        with self._lock:
            session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    def close(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        print(f"[FRAMES] Closed session {session_id}")
        return True

    def evict_expired(self) -> int:
        """Close sessions idle for longer than `session_ttl`; returns how many"""
        now = time.time()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expired(self.session_ttl, now)]
            sessions = [self._sessions.pop(sid) for sid in expired]
        for session in sessions:
            session.close()
            print(f"[FRAMES] Evicted idle session {session.session_id}")
        return len(sessions)

    def close_all(self) -> int:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()
        return len(sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    @staticmethod
    def _build_windows(embedded: bool, nested: bool) -> FrameWindow:
        if not embedded:
            return FrameWindow("frame")

        host = FrameWindow("host")
        parent = FrameWindow("portal", parent=host) if nested else host
        return FrameWindow("frame", parent=parent)


_registry: Optional[FrameSessionRegistry] = None


def get_frame_registry() -> FrameSessionRegistry:
    global _registry
    if _registry is None:
        settings = get_settings()
        _registry = FrameSessionRegistry(
            namespace=settings.message_namespace,
            relay=get_host_relay(),
            session_ttl=settings.frame_session_ttl,
            observed_limit=settings.frame_observed_limit
        )
    return _registry
