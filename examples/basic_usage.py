#!/usr/bin/env python3
"""
Example: Basic usage of the netreg package

This example shows the two sides of the registry:
  - Pattern 1: Detection side feeding the registry directly
  - Pattern 2: Query side answering bus-style requests
  - Pattern 3: Registry built from the live system

Run without arguments; pattern 3 reads /sys/class/net and needs Linux.
"""

import json

def pattern1_detection_side():
    """Pattern 1: Feed link appearance and state changes"""
    print("\nPattern 1: Detection Side")
    print("-" * 70)

    from netreg import LinkRegistry

    registry = LinkRegistry()
    registry.dispatcher.subscribe(lambda event: print(f"  event: {json.dumps(event.to_dict())}"))

    registry.insert(2, "eth0")
    registry.insert(3, "wlan0")
    registry.update_states(2, carrier_state="carrier", operational_state="carrier")
    registry.update_states(3, carrier_state="carrier", address_state="routable",
                           operational_state="routable")

    print(f"  Manager summary: {registry.summary().properties()}")
    return registry

def pattern2_query_side(registry):
    """Pattern 2: Answer ListLinks / GetLinkByName / GetLinkByIndex"""
    print("\nPattern 2: Query Side")
    print("-" * 70)

    from netreg import QueryHandler

    handler = QueryHandler(registry)
    for message in (
        {"method": "ListLinks"},
        {"method": "GetLinkByName", "args": ["wlan0"]},
        {"method": "GetLinkByIndex", "args": [9]},
        {"method": "GetLinkByIndex", "args": ["9"]},
    ):
        reply = handler.handle_message(message)
        print(f"  {message['method']}: {reply.to_dict()}")

def pattern3_live_system():
    """Pattern 3: Registry rebuilt from the running system"""
    print("\nPattern 3: Live System")
    print("-" * 70)

    from netreg import LinkService

    service = LinkService.from_system()
    for link in service.registry.list():
        print(f"  {link.index:>3} {link.name:<16} {link.carrier_state.value:<12} {link.resource_path}")
    print(f"  Manager summary: {service.registry.summary().properties()}")

def main():
    registry = pattern1_detection_side()
    pattern2_query_side(registry)
    try:
        pattern3_live_system()
    except RuntimeError as e:
        print(f"  Skipped: {e}")
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
