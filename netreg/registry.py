"""
Link registry

Authoritative in-memory set of known links, keyed by interface index.

The detection side mutates it (insert, remove, rename, update_state);
queries read it (get_by_index, get_by_name, list). Every operation runs
under one exclusive lock and hands out LinkInfo snapshots, so a listing
never shows a half-applied insert or remove.

After each mutation the manager summary is recomputed from the full link
set. Resulting PropertiesChanged notifications are queued under the lock,
so they keep commit order, and delivered only after it has been
released, so a slow observer cannot stall updates or queries.

Usage:
    registry = LinkRegistry()
    registry.insert(2, "eth0")
    registry.update_state(2, "carrier_state", "carrier")
    registry.get_by_name("eth0").resource_path
"""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .aggregator import ManagerState, StateAggregator
from .dispatcher import NotificationDispatcher
from .errors import DuplicateIndexError, LinkNotFoundError
from .link import DEFAULT_LINK_PATH_BASE, Link, LinkInfo
from .states import property_name, resolve_field, state_type

logger = logging.getLogger(__name__)

# name -> index, or None when the name is not known to the system
NameResolver = Callable[[str], Optional[int]]

_Changes = Tuple[Dict[str, str], Dict[str, str]]


class LinkRegistry:
    """Thread-safe registry of network links"""

    def __init__(
        self,
        aggregator: Optional[StateAggregator] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        name_resolver: Optional[NameResolver] = None,
        link_path_base: str = DEFAULT_LINK_PATH_BASE,
        unmanaged: Iterable[str] = (),
    ):
        self.aggregator = aggregator if aggregator is not None else StateAggregator()
        self.dispatcher = dispatcher if dispatcher is not None else NotificationDispatcher(
            link_path_base=link_path_base)
        self.link_path_base = link_path_base
        self._name_resolver = name_resolver
        self._unmanaged = frozenset(unmanaged)

        self._lock = threading.Lock()
        # dict keeps insertion order, which is the listing order
        self._links: Dict[int, Link] = {}
        self._names: Dict[str, int] = {}
        self._generation = 0

    # ------------------------------------------------------------------
    # Mutations (detection side)
    # ------------------------------------------------------------------

    def insert(self, index: int, name: str, managed: Optional[bool] = None) -> LinkInfo:
        """
        Register a newly detected link with every state at its default.

        Args:
            index: Kernel interface index (positive)
            name: Interface name
            managed: Whether the link counts towards the manager summary;
                defaults to False for names configured as unmanaged

        Raises:
            DuplicateIndexError: index already registered (existing record is kept)
            ValueError: index or name out of range
        """
        _check_index(index)
        if not isinstance(name, str) or not name:
            raise ValueError(f"Invalid link name {name!r}")
        if managed is None:
            managed = name not in self._unmanaged

        with self._lock:
            existing = self._links.get(index)
            if existing is not None:
                err = DuplicateIndexError(index, existing.name, name)
                logger.error("%s", err)
                raise err

            self._generation += 1
            link = Link(index=index, name=name, generation=self._generation, managed=managed)
            self._links[index] = link
            self._bind_name(name, index)
            logger.debug("Link %d (%s) added, generation %d", index, name, link.generation)

            self.dispatcher.queue_manager_changed(self._recompute())
            info = link.snapshot(self.link_path_base)

        self.dispatcher.flush()
        return info

    def remove(self, index: int) -> LinkInfo:
        """
        Drop a link reported gone by the detection side.

        Raises:
            LinkNotFoundError: index not registered
        """
        with self._lock:
            link = self._links.pop(index, None)
            if link is None:
                raise LinkNotFoundError(index)
            self._unbind_name(link.name, index)
            logger.debug("Link %d (%s) removed", index, link.name)

            self.dispatcher.queue_manager_changed(self._recompute())
            info = link.snapshot(self.link_path_base)

        self.dispatcher.flush()
        return info

    def rename(self, index: int, name: str) -> LinkInfo:
        """
        Rebind a live link to a new name.

        The managed flag is fixed at insert: renaming a link to or from a
        name configured as unmanaged does not change whether it counts
        towards the manager summary.
        """
        if not isinstance(name, str) or not name:
            raise ValueError(f"Invalid link name {name!r}")

        with self._lock:
            link = self._get(index)
            if link.name != name:
                self._unbind_name(link.name, index)
                logger.debug("Link %d renamed %s -> %s", index, link.name, name)
                link.name = name
                self._bind_name(name, index)
            return link.snapshot(self.link_path_base)

    def update_state(self, index: int, field: str, value) -> LinkInfo:
        """
        Set one state field of a link.

        Args:
            index: Link index
            field: operational_state, carrier_state or address_state
                (OperationalState etc. are accepted too)
            value: Enum member or its string value

        Raises:
            LinkNotFoundError: index not registered
            ValueError: unknown field or value
        """
        return self.update_states(index, **{field: value})

    def update_states(self, index: int, **fields) -> LinkInfo:
        """Set several state fields as one logical update (one event per scope)"""
        parsed = {}
        for field, value in fields.items():
            name = resolve_field(field)
            parsed[name] = state_type(name).parse(value)

        with self._lock:
            link = self._get(index)
            link_changed, manager_changed = self._apply(link, parsed)
            self.dispatcher.queue_link_changed(index, link_changed)
            self.dispatcher.queue_manager_changed(manager_changed)
            info = link.snapshot(self.link_path_base)

        self.dispatcher.flush()
        return info

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_index(self, index: int) -> LinkInfo:
        with self._lock:
            return self._get(index).snapshot(self.link_path_base)

    def get_by_name(self, name: str) -> LinkInfo:
        """
        Look a link up by its current name.

        The name is resolved to an index at call time through the same
        identity source the detection side uses. An unknown name and a
        known name whose index has no record both raise LinkNotFoundError;
        only the latter is logged, since it means the registry lags behind
        the system.
        """
        if self._name_resolver is None:
            with self._lock:
                index = self._names.get(name)
                if index is None:
                    raise LinkNotFoundError(name)
                return self._links[index].snapshot(self.link_path_base)

        index = self._name_resolver(name)
        if not index or index <= 0:
            raise LinkNotFoundError(name)

        with self._lock:
            link = self._links.get(index)
            if link is None:
                logger.warning("Link %s resolves to index %d, which is not registered", name, index)
                raise LinkNotFoundError(name)
            return link.snapshot(self.link_path_base)

    def list(self) -> List[LinkInfo]:
        """Point-in-time snapshot of all links, in insertion order"""
        with self._lock:
            return [link.snapshot(self.link_path_base) for link in self._links.values()]

    def summary(self) -> ManagerState:
        with self._lock:
            return self.aggregator.state

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)

    def __contains__(self, index) -> bool:
        with self._lock:
            return index in self._links

    # ------------------------------------------------------------------
    # Internals, lock held
    # ------------------------------------------------------------------

    def _get(self, index: int) -> Link:
        link = self._links.get(index)
        if link is None:
            raise LinkNotFoundError(index)
        return link

    def _bind_name(self, name: str, index: int) -> None:
        previous = self._names.get(name)
        if previous is not None and previous != index:
            logger.warning("Link name %s moved from index %d to %d before the old link was removed",
                           name, previous, index)
        self._names[name] = index

    def _unbind_name(self, name: str, index: int) -> None:
        if self._names.get(name) != index:
            return
        del self._names[name]
        # hand the name back to the newest remaining link that still carries it
        for link in reversed(list(self._links.values())):
            if link.name == name and link.index != index:
                self._names[name] = link.index
                break

    def _apply(self, link: Link, states: Dict[str, object]) -> _Changes:
        link_changed = {}
        for name, value in states.items():
            if getattr(link, name) != value:
                setattr(link, name, value)
                link_changed[property_name(name)] = value.value
        if link_changed:
            logger.debug("Link %d (%s) state changed: %s", link.index, link.name, link_changed)
        return link_changed, self._recompute()

    def _recompute(self) -> Dict[str, str]:
        changed = self.aggregator.recompute(self._links.values())
        if not changed:
            return {}
        current = self.aggregator.state.properties()
        logger.debug("Manager state changed: %s", {prop: current[prop] for prop in changed})
        return {prop: current[prop] for prop in sorted(changed)}


def _check_index(index) -> None:
    if isinstance(index, bool) or not isinstance(index, int) or index <= 0:
        raise ValueError(f"Invalid link index {index!r}")
