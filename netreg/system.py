"""
Live system link discovery

Kernel interface identity (name <-> index) is read through libc via CFFI
in ABI mode, the same source the detection side uses, so registry name
lookups and the detection side agree on what a name means right now.

Link state is read from sysfs (/sys/class/net/<dev>/{ifindex,operstate,
carrier,flags}). Address state cannot be observed there; the scanner
leaves it to whoever feeds address information and keeps the value the
registry already has.

Requirements:
    - Python 3.8+
    - cffi>=1.0.0
    - Linux (libc if_nametoindex/if_nameindex, sysfs)

Usage:
    from netreg.system import SystemLinkScanner, if_nametoindex
    if_nametoindex("lo")                # 1
    SystemLinkScanner().sync(registry)  # reconcile registry with the system
"""

import errno
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from cffi import FFI

from .errors import LinkRegistryError
from .states import AddressState, CarrierState, OperationalState, carrier_from_kernel, operational_from

logger = logging.getLogger(__name__)

IF_NAMESIZE = 16
IFF_UP = 0x1
DEFAULT_SYSFS_ROOT = "/sys/class/net"

ffi = FFI()
ffi.cdef("""
struct if_nameindex {
    unsigned int if_index;
    char *if_name;
};

unsigned int if_nametoindex(const char *ifname);
char *if_indextoname(unsigned int ifindex, char *ifname);
struct if_nameindex *if_nameindex(void);
void if_freenameindex(struct if_nameindex *ptr);
""")


@lru_cache(maxsize=1)
def _libc():
    # None loads the C library the interpreter is already linked against
    return ffi.dlopen(None)


def if_nametoindex(name: str) -> Optional[int]:
    """Kernel index of an interface name, None if no such interface"""
    if not name or len(name.encode('utf-8')) >= IF_NAMESIZE:
        return None
    index = _libc().if_nametoindex(name.encode('utf-8'))
    return index or None


def if_indextoname(index: int) -> Optional[str]:
    """Current name of an interface index, None if no such interface"""
    if index <= 0:
        return None
    buf = ffi.new("char[]", IF_NAMESIZE)
    result = _libc().if_indextoname(index, buf)
    if result == ffi.NULL:
        return None
    return ffi.string(buf).decode('utf-8')


def if_nameindex() -> List[Tuple[int, str]]:
    """All interfaces known to the kernel as (index, name) pairs"""
    lib = _libc()
    entries = lib.if_nameindex()
    if entries == ffi.NULL:
        err = ffi.errno
        raise OSError(err, f"if_nameindex failed: {os.strerror(err)}")

    try:
        result = []
        i = 0
        while entries[i].if_index != 0:
            result.append((entries[i].if_index, ffi.string(entries[i].if_name).decode('utf-8')))
            i += 1
        return result
    finally:
        lib.if_freenameindex(entries)


@dataclass(frozen=True)
class ObservedLink:
    """One link as seen in sysfs"""

    index: int
    name: str
    operstate: str
    carrier: Optional[bool]
    admin_up: bool

    @property
    def carrier_state(self) -> CarrierState:
        return carrier_from_kernel(self.operstate, self.carrier, self.admin_up)

    def operational_state(self, address: AddressState = AddressState.OFF) -> OperationalState:
        return operational_from(self.carrier_state, address)


class SystemLinkScanner:
    """
    Scan sysfs for links and reconcile a registry with what was found.

    The scan runs without any registry lock held; sync() then applies the
    differences through the registry's normal mutation calls.
    """

    def __init__(self, sysfs_root: str = DEFAULT_SYSFS_ROOT):
        self.sysfs_root = sysfs_root

    def scan(self) -> List[ObservedLink]:
        try:
            names = sorted(os.listdir(self.sysfs_root))
        except OSError as e:
            raise RuntimeError(f"Cannot list network devices in {self.sysfs_root}: {e}") from e

        links = []
        for name in names:
            observed = self._read_link(name)
            if observed is not None:
                links.append(observed)
        links.sort(key=lambda link: link.index)
        return links

    def _read_link(self, name: str) -> Optional[ObservedLink]:
        path = os.path.join(self.sysfs_root, name)
        index_text = _read_attr(path, 'ifindex')
        if index_text is None:
            # device vanished between listdir and read, or not a device directory
            return None

        try:
            index = int(index_text)
        except ValueError:
            logger.warning("Ignoring %s: unreadable ifindex %r", path, index_text)
            return None

        operstate = _read_attr(path, 'operstate') or 'unknown'
        carrier_text = _read_attr(path, 'carrier')
        carrier = None if carrier_text is None else carrier_text == '1'

        flags_text = _read_attr(path, 'flags')
        try:
            admin_up = bool(int(flags_text, 16) & IFF_UP) if flags_text else True
        except ValueError:
            admin_up = True

        return ObservedLink(index=index, name=name, operstate=operstate,
                            carrier=carrier, admin_up=admin_up)

    def sync(self, registry) -> Dict[str, int]:
        """
        Make the registry match the system.

        Removes vanished links first so a freed name can be taken by a new
        index, then inserts new links, applies renames and state changes.

        Returns:
            Counts of added, removed, renamed and updated links
        """
        observed = {link.index: link for link in self.scan()}
        counts = {'added': 0, 'removed': 0, 'renamed': 0, 'updated': 0}

        for info in registry.list():
            if info.index not in observed:
                try:
                    registry.remove(info.index)
                    counts['removed'] += 1
                except LinkRegistryError as e:
                    logger.debug("Skipping removal of link %d: %s", info.index, e)

        for link in observed.values():
            try:
                if link.index not in registry:
                    info = registry.insert(link.index, link.name)
                    counts['added'] += 1
                else:
                    info = registry.get_by_index(link.index)
                    if info.name != link.name:
                        info = registry.rename(link.index, link.name)
                        counts['renamed'] += 1

                carrier = link.carrier_state
                operational = link.operational_state(info.address_state)
                if (carrier, operational) != (info.carrier_state, info.operational_state):
                    registry.update_states(link.index, carrier_state=carrier,
                                           operational_state=operational)
                    counts['updated'] += 1
            except LinkRegistryError as e:
                logger.debug("Skipping link %d (%s): %s", link.index, link.name, e)
            except ValueError as e:
                logger.warning("Skipping link %d (%s): %s", link.index, link.name, e)

        logger.debug("Sync with %s: %s", self.sysfs_root, counts)
        return counts


def _read_attr(path: str, attr: str) -> Optional[str]:
    try:
        with open(os.path.join(path, attr), 'r', encoding='utf-8') as f:
            return f.read().strip()
    except OSError as e:
        # carrier reads fail with EINVAL while the device is down
        if e.errno not in (errno.ENOENT, errno.EINVAL, errno.ENOTDIR, errno.ENODEV):
            logger.debug("Cannot read %s/%s: %s", path, attr, e)
        return None
