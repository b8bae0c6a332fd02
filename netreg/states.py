"""
Link state enumerations

Each enumeration is a small closed set whose declaration order is also its
rank, from the least to the most connected value. The ranks are what the
state aggregator reduces over.

Operational: off, no-carrier, dormant, degraded-carrier, carrier, degraded,
             enslaved, routable
Carrier:     off, no-carrier, dormant, degraded-carrier, carrier, enslaved
Address:     off, degraded, routable
"""

from enum import Enum
from typing import Dict, Optional, Type, Union


class _RankedState(str, Enum):
    """String enum ordered by declaration"""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    @classmethod
    def parse(cls, value: Union[str, "_RankedState"]):
        """Accept a member or its string value"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        allowed = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid {cls.__name__} {value!r} (expected one of: {allowed})")

    def __str__(self) -> str:
        return self.value


class OperationalState(_RankedState):
    OFF = "off"
    NO_CARRIER = "no-carrier"
    DORMANT = "dormant"
    DEGRADED_CARRIER = "degraded-carrier"
    CARRIER = "carrier"
    DEGRADED = "degraded"
    ENSLAVED = "enslaved"
    ROUTABLE = "routable"


class CarrierState(_RankedState):
    OFF = "off"
    NO_CARRIER = "no-carrier"
    DORMANT = "dormant"
    DEGRADED_CARRIER = "degraded-carrier"
    CARRIER = "carrier"
    ENSLAVED = "enslaved"


class AddressState(_RankedState):
    OFF = "off"
    DEGRADED = "degraded"
    ROUTABLE = "routable"


# Record field -> (bus property name, enum type)
STATE_FIELDS: Dict[str, tuple] = {
    'operational_state': ('OperationalState', OperationalState),
    'carrier_state': ('CarrierState', CarrierState),
    'address_state': ('AddressState', AddressState),
}

PROPERTY_TO_FIELD: Dict[str, str] = {prop: field for field, (prop, _) in STATE_FIELDS.items()}


def resolve_field(field: str) -> str:
    """Normalize a field or property name to the record field name"""
    if field in STATE_FIELDS:
        return field
    if field in PROPERTY_TO_FIELD:
        return PROPERTY_TO_FIELD[field]
    raise ValueError(f"Unknown link state field {field!r}")


def state_type(field: str) -> Type[_RankedState]:
    return STATE_FIELDS[resolve_field(field)][1]


def property_name(field: str) -> str:
    return STATE_FIELDS[resolve_field(field)][0]


def carrier_from_kernel(operstate: str, carrier: Optional[bool] = None, admin_up: bool = True) -> CarrierState:
    """
    Map a kernel operstate (plus the carrier flag when known) to a carrier state.

    'unknown' is common for virtual devices that never report an operstate;
    for those the carrier flag decides.
    """
    if not admin_up:
        return CarrierState.OFF

    if operstate in ('down', 'notpresent', 'lowerlayerdown'):
        return CarrierState.NO_CARRIER
    if operstate in ('dormant', 'testing'):
        return CarrierState.DORMANT
    if operstate == 'up':
        return CarrierState.CARRIER
    if operstate == 'unknown':
        if carrier is None:
            return CarrierState.OFF
        return CarrierState.CARRIER if carrier else CarrierState.NO_CARRIER

    raise ValueError(f"Unknown kernel operstate {operstate!r}")


def operational_from(carrier: CarrierState, address: AddressState) -> OperationalState:
    """Combine carrier and address state into a link operational state"""
    if carrier in (CarrierState.CARRIER, CarrierState.ENSLAVED):
        if address == AddressState.ROUTABLE:
            return OperationalState.ROUTABLE
        if address == AddressState.DEGRADED:
            return OperationalState.DEGRADED
        if carrier == CarrierState.ENSLAVED:
            return OperationalState.ENSLAVED
        return OperationalState.CARRIER

    if carrier == CarrierState.DEGRADED_CARRIER:
        return OperationalState.DEGRADED_CARRIER

    return OperationalState(carrier.value)
