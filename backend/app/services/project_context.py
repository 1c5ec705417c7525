import threading
from typing import Any, Callable, List, Optional
from app.core.errors import ConfigurationError
from app.schemas.handshake import (
    ConfigUpdateMessage,
    ProjectContext,
    RoleSelectedMessage,
    parse_message,
)


ContextListener = Callable[[ProjectContext], None]


class ProjectContextHolder:
    """
    Owns the active ProjectContext of one frame.

    A config update swaps the whole context (no field-level merge) and bumps
    `generation`; anything fetched under an older generation is stale.
    """

    def __init__(self, namespace: str = "lef", context: Optional[ProjectContext] = None):
        self.namespace = namespace
        self._context = context
        self._generation = 1 if context else 0
        self.selected_role: Optional[str] = None
        self._listeners: List[ContextListener] = []
        self._lock = threading.Lock()

    @property
    def context(self) -> Optional[ProjectContext]:
        return self._context

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def configured(self) -> bool:
        return self._context is not None

    def require(self) -> ProjectContext:
        context = self._context
        if context is None:
            raise ConfigurationError("No project configured for this frame")
        return context

    def subscribe(self, listener: ContextListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, context: ProjectContext) -> bool:
        """Install `context`; returns False when it equals the current one"""
        with self._lock:
            if context == self._context:
                return False
            self._context = context
            self._generation += 1
            generation = self._generation

        print(f"[HANDSHAKE] Context swapped to project={context.project_id} (generation {generation})")
        for listener in list(self._listeners):
            listener(context)
        return True

    def handle_message(self, raw: Any) -> bool:
        """
        Apply an inbound host message. Returns True when the context changed.

        Safe to call repeatedly with the same payload.
        """
        message = parse_message(raw, self.namespace)

        if isinstance(message, ConfigUpdateMessage):
            project_id = message.project_id.strip()
            if not project_id:
                print("[HANDSHAKE] Ignoring config update without project ID")
                return False
            role = message.data.role if message.data else None
            return self.replace(ProjectContext(project_id=project_id, role=role))

        if isinstance(message, RoleSelectedMessage):
            self.selected_role = message.role
            print(f"[HANDSHAKE] Role selected upstream: {message.role}")

        return False
