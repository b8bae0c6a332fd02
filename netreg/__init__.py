"""
netreg - In-memory network link registry

Keeps the authoritative set of known network links, answers enumeration
and lookup queries against it, and broadcasts coalesced PropertiesChanged
notifications when link or manager summary state changes.

Modules:
    registry: Link registry (insert/remove/update, lookups, listing)
    aggregator: Manager summary state reduction
    dispatcher: PropertiesChanged fan-out to observers
    query: Request handling and error translation
    system: libc name/index lookups and sysfs link scanning
    service: Composition of the above

Example:
    >>> from netreg import LinkRegistry
    >>> registry = LinkRegistry()
    >>> registry.insert(2, "eth0").resource_path
    '/org/freedesktop/network1/link/2'
"""

__version__ = "1.0.0"
__author__ = "Harry Coin"
__email__ = "hcoin@quietfountain.com"
__license__ = "MIT"

from .aggregator import ManagerState, StateAggregator, summarize
from .dispatcher import NotificationDispatcher, PropertiesChanged
from .errors import DuplicateIndexError, LinkNotFoundError, LinkRegistryError, MalformedRequestError
from .link import LinkInfo
from .query import QueryHandler, Reply
from .registry import LinkRegistry
from .service import LinkService
from .states import AddressState, CarrierState, OperationalState

__all__ = [
    "AddressState",
    "CarrierState",
    "DuplicateIndexError",
    "LinkInfo",
    "LinkNotFoundError",
    "LinkRegistry",
    "LinkRegistryError",
    "LinkService",
    "MalformedRequestError",
    "ManagerState",
    "NotificationDispatcher",
    "OperationalState",
    "PropertiesChanged",
    "QueryHandler",
    "Reply",
    "StateAggregator",
    "summarize",
    "__version__",
]
