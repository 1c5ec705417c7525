"""
Handshake between the host page and the embedded frame.

The resolver reads the host DOM once to find the project id and the role the
frame runs as, tells the host windows it is ready, and relays namespaced
messages coming back from the host to a subscriber.

Host containers (namespace "lef"):
- #lef-designer-root  designer widget
- #lef-client-root    client widget
- [data-project-id]   generic container, role unknown
"""

from datetime import datetime, timezone
from typing import Any, Callable, List, Optional
from app.core.errors import ConfigurationError
from app.schemas.handshake import (
    ProjectContext,
    ReadyData,
    WidgetReadyMessage,
    USER_ROLES,
    WIDGET_READY,
    is_namespaced,
    message_type,
)
from app.services.frame_window import FrameWindow
from app.services.host_document import Element, HostDocument


DESIGNER_CONTAINER = "designer-root"
CLIENT_CONTAINER = "client-root"
PROJECT_ID_ATTR = "data-project-id"
USER_ROLE_ATTR = "data-user-role"


class HandshakeResolver:

    def __init__(self, document: HostDocument, window: FrameWindow, namespace: str = "lef"):
        self.document = document
        self.window = window
        self.namespace = namespace
        self.role_containers = (
            (f"{namespace}-{DESIGNER_CONTAINER}", "designer"),
            (f"{namespace}-{CLIENT_CONTAINER}", "client"),
        )

    def resolve(self) -> ProjectContext:
        """
        Derive the ProjectContext from the host DOM and announce readiness.

        Raises ConfigurationError when no container carries a project id;
        callers then render a "not configured" state and skip scoped queries.
        """
        source = self._find_project_container()
        if source is None:
            print("[HANDSHAKE] No project ID found in host container")
            raise ConfigurationError(
                "Missing project ID for frame initialization",
                reason="missing_project_id"
            )

        context = ProjectContext(
            project_id=source.dataset["projectId"],
            role=self._resolve_role(source)
        )
        print(f"[HANDSHAKE] Resolved project={context.project_id} role={context.role}")

        # Ready message needs a role for its `widget` field
        if context.role:
            self.announce_ready(context)

        return context

    def announce_ready(self, context: ProjectContext) -> int:
        """Fire-and-forget ready notification; returns how many targets were posted to"""
        message = WidgetReadyMessage(
            type=message_type(self.namespace, WIDGET_READY),
            widget=context.role,
            project_id=context.project_id,
            data=ReadyData(timestamp=datetime.now(timezone.utc).isoformat())
        ).to_wire()

        targets = self.ready_targets()
        for target in targets:
            target.post_message(message)
        print(f"[HANDSHAKE] Ready sent to {[t.name for t in targets]}")
        return len(targets)

    def ready_targets(self) -> List[FrameWindow]:
        """Current window, then parent and top, skipping repeats"""
        targets = [self.window]
        for candidate in (self.window.parent, self.window.top):
            if candidate is None:
                continue
            if any(candidate is t for t in targets):
                continue
            targets.append(candidate)
        return targets

    def listen(self, on_message: Callable[[dict], None]) -> Callable[[], None]:
        """
        Forward every namespaced message reaching the frame window to `on_message`.

        Returns the unsubscribe function; it must be called on teardown or the
        listener keeps receiving (and duplicates pile up on re-mount).
        """
        namespace = self.namespace

        def handler(data: Any) -> None:
            if not is_namespaced(data, namespace):
                return
            on_message(data)

        self.window.add_listener(handler)
        subscribed = [True]

        def unsubscribe() -> None:
            if subscribed[0]:
                self.window.remove_listener(handler)
                subscribed[0] = False

        return unsubscribe

    def _find_project_container(self) -> Optional[Element]:
        for container_id, _ in self.role_containers:
            element = self.document.get_element_by_id(container_id)
            if element is not None and element.dataset.get("projectId"):
                return element

        element = self.document.query_selector_attr(PROJECT_ID_ATTR)
        if element is not None and element.dataset.get("projectId"):
            return element

        return None

    def _resolve_role(self, source: Element) -> Optional[str]:
        role = source.attrs.get(USER_ROLE_ATTR)
        if role in USER_ROLES:
            return role

        # Fallback: whichever well-known container is on the page
        for container_id, container_role in self.role_containers:
            if self.document.get_element_by_id(container_id) is not None:
                return container_role

        return None
