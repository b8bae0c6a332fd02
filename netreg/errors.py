"""Errors raised by the link registry and the query handler"""

from typing import Union

# Error names carried back to callers over the bus
ERROR_NO_SUCH_LINK = "org.freedesktop.network1.NoSuchLink"
ERROR_INVALID_ARGS = "org.freedesktop.DBus.Error.InvalidArgs"
ERROR_UNKNOWN_PROPERTY = "org.freedesktop.DBus.Error.UnknownProperty"
ERROR_NO_MEMORY = "org.freedesktop.DBus.Error.NoMemory"
ERROR_FAILED = "org.freedesktop.DBus.Error.Failed"


class LinkRegistryError(Exception):
    """Base class for registry errors"""


class LinkNotFoundError(LinkRegistryError, LookupError):
    """Name or index does not resolve to a live link"""

    def __init__(self, identifier: Union[int, str]):
        self.identifier = identifier
        super().__init__(f"Link {identifier} not known")


class DuplicateIndexError(LinkRegistryError):
    """Detection side reported an index that is already registered"""

    def __init__(self, index: int, existing_name: str, new_name: str):
        self.index = index
        self.existing_name = existing_name
        self.new_name = new_name
        super().__init__(
            f"Link index {index} already registered as {existing_name!r}, "
            f"refusing to replace it with {new_name!r}"
        )


class MalformedRequestError(LinkRegistryError, ValueError):
    """Request arguments failed shape validation"""
