"""
Link service

Wires registry, state aggregator, notification dispatcher and query handler
together. The detection side talks to `service.registry`; the transport
hands requests to `handle_request` / `handle_message` and subscribes to
PropertiesChanged events with `subscribe`.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from .aggregator import StateAggregator
from .config import Settings, get_settings
from .dispatcher import NotificationDispatcher, Observer
from .query import QueryHandler, Reply, Request
from .registry import LinkRegistry, NameResolver
from .system import SystemLinkScanner, if_nametoindex

logger = logging.getLogger(__name__)


class LinkService:
    """In-memory link registry service"""

    def __init__(self, settings: Optional[Settings] = None, name_resolver: Optional[NameResolver] = None):
        self.settings = settings or get_settings()

        self.aggregator = StateAggregator(self.settings.aggregation_policy)
        self.dispatcher = NotificationDispatcher(
            manager_path=self.settings.manager_path,
            link_path_base=self.settings.link_path_base,
            manager_interface=self.settings.manager_interface,
            link_interface=self.settings.link_interface,
        )
        self.registry = LinkRegistry(
            aggregator=self.aggregator,
            dispatcher=self.dispatcher,
            name_resolver=name_resolver,
            link_path_base=self.settings.link_path_base,
            unmanaged=self.settings.unmanaged_links,
        )
        self.query = QueryHandler(self.registry)
        self.scanner = SystemLinkScanner(self.settings.sysfs_root)

    @classmethod
    def from_system(cls, settings: Optional[Settings] = None) -> "LinkService":
        """Service resolving names through libc, seeded from the live system"""
        service = cls(settings, name_resolver=if_nametoindex)
        counts = service.sync()
        logger.info("Registry built from %s: %d link(s)", service.scanner.sysfs_root, counts['added'])
        return service

    def sync(self) -> Dict[str, int]:
        """Reconcile the registry with the live system"""
        return self.scanner.sync(self.registry)

    def handle_request(self, request: Request) -> Reply:
        return self.query.handle(request)

    def handle_message(self, message: Mapping[str, Any]) -> Reply:
        return self.query.handle_message(message)

    def subscribe(self, observer: Observer) -> None:
        self.dispatcher.subscribe(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self.dispatcher.unsubscribe(observer)
