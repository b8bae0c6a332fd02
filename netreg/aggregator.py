"""
Manager-level summary state

The manager exposes three summary properties (OperationalState,
CarrierState, AddressState). Each is a reduction over the same state
field of every managed link. The summary is always recomputed from the
full link set, never patched incrementally.

Reduction policies:
    worst  - least connected value wins (default)
    best   - most connected value wins

Any callable taking a non-empty sequence of members of one state enum and
returning one of them can be used as a policy.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Sequence, Set, Union

from .states import AddressState, CarrierState, OperationalState, STATE_FIELDS

Reducer = Callable[[Sequence], object]


def worst_case(states: Sequence):
    return min(states, key=lambda s: s.rank)


def best_case(states: Sequence):
    return max(states, key=lambda s: s.rank)


POLICIES: Dict[str, Reducer] = {
    'worst': worst_case,
    'best': best_case,
}


def get_policy(policy: Union[str, Reducer]) -> Reducer:
    if callable(policy):
        return policy
    try:
        return POLICIES[policy]
    except KeyError:
        raise ValueError(
            f"Unknown aggregation policy {policy!r} (expected one of: {', '.join(POLICIES)})"
        ) from None


@dataclass(frozen=True)
class ManagerState:
    operational_state: OperationalState = OperationalState.OFF
    carrier_state: CarrierState = CarrierState.OFF
    address_state: AddressState = AddressState.OFF

    def properties(self) -> Dict[str, str]:
        return {prop: getattr(self, name).value for name, (prop, _) in STATE_FIELDS.items()}


def summarize(links: Iterable, policy: Union[str, Reducer] = 'worst') -> ManagerState:
    """Reduce the per-link states of all managed links to a ManagerState"""
    reduce = get_policy(policy)
    managed = [link for link in links if link.managed]
    if not managed:
        return ManagerState()

    summary = {}
    for name, (_, enum_type) in STATE_FIELDS.items():
        value = reduce([getattr(link, name) for link in managed])
        summary[name] = enum_type.parse(value)
    return ManagerState(**summary)


class StateAggregator:
    """Holds the current summary and reports which properties changed"""

    def __init__(self, policy: Union[str, Reducer] = 'worst'):
        self.policy = get_policy(policy)
        self._state = ManagerState()

    @property
    def state(self) -> ManagerState:
        return self._state

    def recompute(self, links: Iterable) -> Set[str]:
        """
        Recompute the summary from the full link set.

        Returns:
            Property names whose value differs from the previous summary;
            empty when nothing changed.
        """
        new = summarize(links, self.policy)
        old = self._state
        self._state = new

        changed = set()
        for name, (prop, _) in STATE_FIELDS.items():
            if getattr(new, name) != getattr(old, name):
                changed.add(prop)
        return changed
