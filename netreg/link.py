"""
Interface records

Link is the registry's private, mutable record. LinkInfo is the immutable
copy handed to everything outside the registry lock; callers keep it as
long as they like without seeing later mutations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from .states import AddressState, CarrierState, OperationalState, STATE_FIELDS

DEFAULT_LINK_PATH_BASE = "/org/freedesktop/network1/link"


def empty_to_root(path: str) -> str:
    return path if path else "/"


def link_bus_path(index: int, base: str = DEFAULT_LINK_PATH_BASE) -> str:
    """Object path of a link, e.g. /org/freedesktop/network1/link/3"""
    base = base.rstrip("/")
    return empty_to_root(f"{base}/{index}")


@dataclass
class Link:
    index: int
    name: str
    generation: int = 0
    managed: bool = True
    operational_state: OperationalState = OperationalState.OFF
    carrier_state: CarrierState = CarrierState.OFF
    address_state: AddressState = AddressState.OFF

    def snapshot(self, path_base: str = DEFAULT_LINK_PATH_BASE) -> "LinkInfo":
        return LinkInfo(
            index=self.index,
            name=self.name,
            generation=self.generation,
            managed=self.managed,
            operational_state=self.operational_state,
            carrier_state=self.carrier_state,
            address_state=self.address_state,
            path_base=path_base,
        )


@dataclass(frozen=True)
class LinkInfo:
    index: int
    name: str
    generation: int = 0
    managed: bool = True
    operational_state: OperationalState = OperationalState.OFF
    carrier_state: CarrierState = CarrierState.OFF
    address_state: AddressState = AddressState.OFF
    path_base: str = field(default=DEFAULT_LINK_PATH_BASE, repr=False, compare=False)

    @property
    def resource_path(self) -> str:
        return link_bus_path(self.index, self.path_base)

    def properties(self) -> Dict[str, str]:
        """Change-notified bus properties of this link"""
        return {prop: getattr(self, name).value for name, (prop, _) in STATE_FIELDS.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'index': self.index,
            'name': self.name,
            'path': self.resource_path,
            'managed': self.managed,
            'operational_state': self.operational_state.value,
            'carrier_state': self.carrier_state.value,
            'address_state': self.address_state.value,
        }
