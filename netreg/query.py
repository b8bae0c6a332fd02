"""
Query handler for the manager object

Maps the manager's bus methods onto registry reads:

    ListLinks()            -> [(index, name, path), ...]
    GetLinkByName(name)    -> (index, path)
    GetLinkByIndex(index)  -> (name, path)
    Get(property)          -> summary state string
    GetAll()               -> {property: summary state string}

Every outcome is a Reply. Registry errors are translated here into the
caller-facing error names; nothing internal crosses this boundary raw.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import (
    ERROR_FAILED,
    ERROR_INVALID_ARGS,
    ERROR_NO_MEMORY,
    ERROR_NO_SUCH_LINK,
    ERROR_UNKNOWN_PROPERTY,
    LinkNotFoundError,
    MalformedRequestError,
)
from .registry import LinkRegistry

logger = logging.getLogger(__name__)

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


@dataclass(frozen=True)
class ListLinks:
    pass


@dataclass(frozen=True)
class GetLinkByName:
    name: str


@dataclass(frozen=True)
class GetLinkByIndex:
    index: int


@dataclass(frozen=True)
class GetProperty:
    name: str


@dataclass(frozen=True)
class GetAllProperties:
    pass


Request = Union[ListLinks, GetLinkByName, GetLinkByIndex, GetProperty, GetAllProperties]

# bus method name -> (request type, argument count)
METHODS = {
    'ListLinks': (ListLinks, 0),
    'GetLinkByName': (GetLinkByName, 1),
    'GetLinkByIndex': (GetLinkByIndex, 1),
    'Get': (GetProperty, 1),
    'GetAll': (GetAllProperties, 0),
}


@dataclass(frozen=True)
class ReplyError:
    name: str
    message: str


@dataclass(frozen=True)
class Reply:
    value: Any = None
    error: Optional[ReplyError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {'error': {'name': self.error.name, 'message': self.error.message}}
        return {'value': self.value}


def _failure(name: str, message: str) -> Reply:
    return Reply(error=ReplyError(name, message))


class QueryHandler:
    """Answer manager requests from registry snapshots"""

    def __init__(self, registry: LinkRegistry):
        self.registry = registry
        self._handlers = {
            ListLinks: self._list_links,
            GetLinkByName: self._get_link_by_name,
            GetLinkByIndex: self._get_link_by_index,
            GetProperty: self._get_property,
            GetAllProperties: self._get_all_properties,
        }

    def handle_message(self, message: Mapping[str, Any]) -> Reply:
        """
        Decode a transport message of the form {"method": str, "args": [...]}
        and handle it. Shape errors are reported as InvalidArgs without
        touching the registry.
        """
        try:
            request = parse_request(message)
        except MalformedRequestError as e:
            logger.debug("Rejected malformed request: %s", e)
            return _failure(ERROR_INVALID_ARGS, str(e))
        return self.handle(request)

    def handle(self, request: Request) -> Reply:
        handler = self._handlers.get(type(request))
        if handler is None:
            return _failure(ERROR_INVALID_ARGS, f"Unsupported request {type(request).__name__}")

        try:
            validate_request(request)
            return Reply(value=handler(request))
        except LinkNotFoundError as e:
            logger.debug("%s: %s", type(request).__name__, e)
            return _failure(ERROR_NO_SUCH_LINK, f"Link {e.identifier} not known")
        except _UnknownProperty as e:
            return _failure(ERROR_UNKNOWN_PROPERTY, f"Unknown property {e.name}")
        except MalformedRequestError as e:
            logger.debug("Rejected malformed request: %s", e)
            return _failure(ERROR_INVALID_ARGS, str(e))
        except MemoryError:
            logger.error("Out of memory answering %s", type(request).__name__)
            return _failure(ERROR_NO_MEMORY, "Out of memory")
        except Exception:
            logger.exception("Unexpected failure answering %r", request)
            return _failure(ERROR_FAILED, f"Failed to handle {type(request).__name__}")

    def _list_links(self, request: ListLinks) -> List[Tuple[int, str, str]]:
        return [(link.index, link.name, link.resource_path) for link in self.registry.list()]

    def _get_link_by_name(self, request: GetLinkByName) -> Tuple[int, str]:
        link = self.registry.get_by_name(request.name)
        return link.index, link.resource_path

    def _get_link_by_index(self, request: GetLinkByIndex) -> Tuple[str, str]:
        link = self.registry.get_by_index(request.index)
        return link.name, link.resource_path

    def _get_property(self, request: GetProperty):
        properties = self.registry.summary().properties()
        if request.name not in properties:
            raise _UnknownProperty(request.name)
        return properties[request.name]

    def _get_all_properties(self, request: GetAllProperties) -> Dict[str, str]:
        return self.registry.summary().properties()


class _UnknownProperty(Exception):
    def __init__(self, name: str):
        self.name = name
        super().__init__(name)


def parse_request(message: Mapping[str, Any]) -> Request:
    """Build a typed request from a generic {"method", "args"} message"""
    if not isinstance(message, Mapping):
        raise MalformedRequestError(f"Request must be a mapping, got {type(message).__name__}")

    method = message.get('method')
    if not isinstance(method, str):
        raise MalformedRequestError("Request is missing a method name")
    if method not in METHODS:
        raise MalformedRequestError(f"Unknown method {method}")

    args = message.get('args', [])
    if not isinstance(args, (list, tuple)):
        raise MalformedRequestError(f"{method}: arguments must be a list")

    request_type, arity = METHODS[method]
    if len(args) != arity:
        raise MalformedRequestError(f"{method} takes {arity} argument(s), {len(args)} given")

    request = request_type(*args)
    validate_request(request)
    return request


def validate_request(request: Request) -> None:
    """Shape checks done before the registry is consulted"""
    if isinstance(request, (GetLinkByName, GetProperty)):
        if not isinstance(request.name, str):
            raise MalformedRequestError(
                f"{type(request).__name__}: expected a string, got {type(request.name).__name__}")
    elif isinstance(request, GetLinkByIndex):
        index = request.index
        if isinstance(index, bool) or not isinstance(index, int):
            raise MalformedRequestError(
                f"GetLinkByIndex: expected an integer, got {type(index).__name__}")
        if not INT32_MIN <= index <= INT32_MAX:
            raise MalformedRequestError(f"GetLinkByIndex: index {index} out of range")
