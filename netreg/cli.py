#!/usr/bin/env python3
"""
netreg - Network link registry query tool

Builds the link registry from the live system and answers the manager
queries against it:
- ListLinks (default)
- GetLinkByName / GetLinkByIndex
- Manager summary properties (OperationalState, CarrierState, AddressState)

With --watch the registry is kept in sync with the system and every
PropertiesChanged event is printed as one JSON line.

Requirements:
    - Python 3.8+
    - cffi>=1.0.0
    - pydantic-settings>=2.0
    - Linux (sysfs)

Usage:
    netreg                      # ListLinks as JSON
    netreg -n eth0              # GetLinkByName
    netreg -i 2                 # GetLinkByIndex
    netreg --summary            # manager summary properties
    netreg --details            # full link records and summary
    netreg --watch 2            # rescan every 2s and print change events
"""

import argparse
import json
import sys
import time
from typing import Any

from . import __version__
from .config import Settings
from .dispatcher import PropertiesChanged
from .log import setup_logging
from .query import GetAllProperties, GetLinkByIndex, GetLinkByName, ListLinks
from .service import LinkService


def _dump(data: Any, compact: bool) -> None:
    if compact:
        print(json.dumps(data, separators=(',', ':')))
    else:
        print(json.dumps(data, indent=2, sort_keys=False))


def _format(request, value):
    if isinstance(request, ListLinks):
        return [{'index': index, 'name': name, 'path': path} for index, name, path in value]
    if isinstance(request, GetLinkByName):
        index, path = value
        return {'index': index, 'path': path}
    if isinstance(request, GetLinkByIndex):
        name, path = value
        return {'name': name, 'path': path}
    return value


def watch(service: LinkService, interval: float) -> int:
    """Rescan every interval seconds, printing change events until interrupted"""

    def print_event(event: PropertiesChanged) -> None:
        print(json.dumps(event.to_dict(), separators=(',', ':')), flush=True)

    service.subscribe(print_event)
    try:
        while True:
            time.sleep(interval)
            service.sync()
    finally:
        service.unsubscribe(print_event)


def main() -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(
        prog='netreg',
        description='Network link registry - list and look up links, show manager state',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument('--version', '-v', action='version',
                        version=f'netreg {__version__}')

    query = parser.add_mutually_exclusive_group()
    query.add_argument('-n', '--name', type=str, metavar='NAME',
                       help='Look a link up by name (GetLinkByName)')
    query.add_argument('-i', '--index', type=int, metavar='INDEX',
                       help='Look a link up by index (GetLinkByIndex)')
    query.add_argument('-s', '--summary', action='store_true',
                       help='Show manager summary properties')
    query.add_argument('-d', '--details', action='store_true',
                       help='Show full link records and the manager summary')
    query.add_argument('-w', '--watch', type=float, metavar='SECONDS',
                       help='Keep the registry in sync and print PropertiesChanged events')

    parser.add_argument('--compact', '-c', action='store_true',
                        help='Compact JSON output (default: pretty-print)')
    parser.add_argument('--log-level', type=str, default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Override NETREG_LOG_LEVEL')

    args = parser.parse_args()

    if args.watch is not None and args.watch <= 0:
        parser.error("--watch interval must be positive")

    try:
        settings = Settings()
        setup_logging(args.log_level or settings.log_level, settings.log_file)

        service = LinkService.from_system(settings)

        if args.watch is not None:
            return watch(service, args.watch)

        if args.details:
            _dump({
                'links': [link.to_dict() for link in service.registry.list()],
                'manager': service.registry.summary().properties(),
            }, args.compact)
            return 0

        if args.name is not None:
            request = GetLinkByName(args.name)
        elif args.index is not None:
            request = GetLinkByIndex(args.index)
        elif args.summary:
            request = GetAllProperties()
        else:
            request = ListLinks()

        reply = service.handle_request(request)
        if not reply.ok:
            print(f"Error: {reply.error.message}", file=sys.stderr)
            return 1

        _dump(_format(request, reply.value), args.compact)
        return 0

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc(file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
