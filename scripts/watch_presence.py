#!/usr/bin/env python3
"""Watch peers' locations through a live presence session.

Signs nobody in: the principal's uid is taken from the command line and
the store credentials from the environment. The session publishes a fixed
position for the principal (when ``--lat``/``--long`` are given and sharing
is on), tracks the given peers and prints every presence snapshot.

Usage
-----
Set environment variables and run::

    export WAYPOINT_DATABASE_URL="https://example-default-rtdb.firebaseio.com"
    export WAYPOINT_AUTH_TOKEN="..."
    python scripts/watch_presence.py --me uid-1 --peer uid-2 --peer uid-3 --share --lat 52.41 --long -4.08

Options::

    --me UID            Principal's user ID (required)
    --peer UID          Peer to track, repeatable
    --project           Track the peers as a project roster instead of friends
    --share             Turn location sharing on for the run
    --lat / --long      Fixed device position to publish
    --duration SECONDS  Stop after this many seconds (default: run until Ctrl-C)
    --json              Print snapshots as JSON lines
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pywaypoint import (  # noqa: E402
    Coordinate,
    FirebaseLocationStore,
    InMemoryPreferenceStore,
    JsonFilePreferenceStore,
    Peer,
    PresenceSession,
    PresenceState,
    Principal,
    Scope,
    WaypointConfig,
)
from pywaypoint.preferences import PreferenceStore  # noqa: E402


def _print_snapshot(state: PresenceState, *, json_mode: bool) -> None:
    if json_mode:
        print(json.dumps(state.model_dump(mode="json"), ensure_ascii=False), flush=True)
        return
    phase = "on" if state.sharing_enabled else "off"
    own = f"{state.own_coordinate.latitude}, {state.own_coordinate.longitude}" if state.own_coordinate else "-"
    print(f"sharing={phase} fix={own} scope={state.scope or '-'}", flush=True)
    for record in state.visible_locations:
        when = record.last_updated.isoformat() if record.last_updated else "unknown"
        name = record.display_name or record.peer_id
        print(f"  {name:<24} {record.latitude:>10.5f} {record.longitude:>11.5f}  updated {when}", flush=True)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Print live presence snapshots for a set of peers.")
    parser.add_argument("--me", required=True, help="Principal's user ID")
    parser.add_argument("--peer", action="append", default=[], help="Peer user ID to track (repeatable)")
    parser.add_argument("--project", action="store_true", help="Track peers as a project roster")
    parser.add_argument("--share", action="store_true", help="Turn location sharing on")
    parser.add_argument("--lat", type=float, help="Fixed latitude to publish")
    parser.add_argument("--long", type=float, dest="lon", help="Fixed longitude to publish")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Print snapshots as JSON lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --long must be given together")

    config = WaypointConfig.from_env()
    preferences: PreferenceStore = (
        JsonFilePreferenceStore(config.preferences_path) if config.preferences_path else InMemoryPreferenceStore()
    )
    principal = Principal(uid=args.me)
    peers = [Peer(uid=uid) for uid in args.peer]
    scope = Scope.PROJECT if args.project else Scope.FRIENDS

    async with FirebaseLocationStore(config) as store:
        async with PresenceSession(principal, store, config=config, preferences=preferences) as presence:
            presence.subscribe(lambda state: _print_snapshot(state, json_mode=args.json_mode))
            if args.lat is not None:
                await presence.update_fix(Coordinate.of(args.lat, args.lon))
            if args.share:
                await presence.set_sharing(True)
            if not await presence.track(scope, peers):
                # Without a tracking loop, show one manual refresh instead.
                await presence.refresh(scope, peers)

            try:
                if args.duration is not None:
                    await asyncio.sleep(args.duration)
                else:
                    await asyncio.Event().wait()
            finally:
                if args.share:
                    await presence.set_sharing(False)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
