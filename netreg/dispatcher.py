"""
PropertiesChanged notification fan-out

Observers are plain callables receiving a PropertiesChanged event. Delivery
is fire-and-forget: an observer that raises is logged and skipped, the
remaining observers still get the event, and the state change that caused
it stays committed.

The registry queues events while it still holds its own lock, which fixes
their order, and flushes them after releasing it. Flushing is serialized,
so every observer sees events in the order the changes were committed.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Tuple

from .link import DEFAULT_LINK_PATH_BASE, empty_to_root, link_bus_path

logger = logging.getLogger(__name__)

DEFAULT_MANAGER_PATH = "/org/freedesktop/network1"
MANAGER_INTERFACE = "org.freedesktop.network1.Manager"
LINK_INTERFACE = "org.freedesktop.network1.Link"


@dataclass(frozen=True)
class PropertiesChanged:
    """One coalesced change event for a single object path"""

    path: str
    interface: str
    changed: Mapping[str, str]
    invalidated: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.path,
            'interface': self.interface,
            'changed': dict(self.changed),
            'invalidated': list(self.invalidated),
        }


Observer = Callable[[PropertiesChanged], None]


class NotificationDispatcher:
    """
    Deliver PropertiesChanged events to subscribed observers.

    flush() and the notify_* calls must not be made with the registry lock
    held; queue_* calls are meant to be.
    """

    def __init__(
        self,
        manager_path: str = DEFAULT_MANAGER_PATH,
        link_path_base: str = DEFAULT_LINK_PATH_BASE,
        manager_interface: str = MANAGER_INTERFACE,
        link_interface: str = LINK_INTERFACE,
    ):
        self.manager_path = empty_to_root(manager_path)
        self.link_path_base = link_path_base
        self.manager_interface = manager_interface
        self.link_interface = link_interface
        self._observers: List[Observer] = []
        self._lock = threading.Lock()
        self._pending = deque()
        # reentrant so an observer may mutate the registry while being notified
        self._delivery_lock = threading.RLock()

    def subscribe(self, observer: Observer) -> None:
        """Subscribe observer to events"""
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        """Unsubscribe observer from events"""
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def queue_manager_changed(self, changed: Mapping[str, str]) -> None:
        """Queue one manager-scoped event naming exactly the changed properties"""
        if changed:
            self._pending.append(
                PropertiesChanged(self.manager_path, self.manager_interface, dict(changed)))

    def queue_link_changed(self, index: int, changed: Mapping[str, str]) -> None:
        """Queue one event scoped to the link's object path"""
        if changed:
            path = link_bus_path(index, self.link_path_base)
            self._pending.append(PropertiesChanged(path, self.link_interface, dict(changed)))

    def flush(self) -> None:
        """Deliver queued events in the order they were queued"""
        with self._delivery_lock:
            while self._pending:
                self._publish(self._pending.popleft())

    def notify_manager_changed(self, changed: Mapping[str, str]) -> None:
        self.queue_manager_changed(changed)
        self.flush()

    def notify_link_changed(self, index: int, changed: Mapping[str, str]) -> None:
        self.queue_link_changed(index, changed)
        self.flush()

    def _publish(self, event: PropertiesChanged) -> None:
        with self._lock:
            observers = list(self._observers)

        logger.debug("PropertiesChanged %s %s -> %d observer(s)",
                     event.path, sorted(event.changed), len(observers))

        for observer in observers:
            try:
                observer(event)
            except Exception:
                logger.exception("Observer %r failed handling change on %s", observer, event.path)
