"""
In-process stand-in for browser windows exchanging postMessage payloads.

Delivery is one-way and unacknowledged: a message posted to a window with no
listeners is simply lost, and a listener registered twice hears it twice.
Handlers should therefore be idempotent.
"""

import copy
import traceback
from typing import Any, Callable, List, Optional


MessageListener = Callable[[Any], None]


class FrameWindow:

    def __init__(self, name: str, parent: Optional["FrameWindow"] = None):
        self.name = name
        self.parent = parent
        self._listeners: List[MessageListener] = []

    @property
    def top(self) -> "FrameWindow":
        window = self
        while window.parent is not None:
            window = window.parent
        return window

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        """Remove one registration of `listener`; unknown listeners are ignored"""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def post_message(self, data: Any) -> int:
        """
        Deliver a copy of `data` to every listener registered right now.

        Returns how many listeners were reached (zero is a valid outcome).
        """
        delivered = 0
        for listener in list(self._listeners):
            try:
                listener(copy.deepcopy(data))
                delivered += 1
            except Exception as e:
                # A failing listener must not stop delivery to the others
                print(f"[FRAMES] Listener on '{self.name}' failed: {e}")
                traceback.print_exc()
        return delivered

    def __repr__(self) -> str:
        return f"FrameWindow({self.name!r})"
