#!/usr/bin/env python3
"""
Replay a GPX track into a running pet-tracker API as a live session.

Starts live tracking for the pet, pushes every timestamped trackpoint as a
position sample (keeping the recorded timestamps), prints the resulting
session status and stops the session unless --keep-running is given.

Usage examples:
  - Against a local backend:
      python scripts/replay_gpx.py --base-url http://localhost:8000 --pet-id 1 walk.gpx
  - Pace the replay at 10x the recorded speed, as the admin front-end:
      python scripts/replay_gpx.py --base-url http://localhost:8000 --pet-id 1 \
          --source admin --speedup 10 walk.gpx
"""

from __future__ import annotations

import argparse
import asyncio
import json

import httpx

from app.tracking.sources import GpxPositionSource, parse_gpx_samples


def check(r: httpx.Response) -> dict:
    if r.status_code >= 300:
        raise RuntimeError(f"{r.request.method} {r.request.url.path} -> HTTP {r.status_code}: {r.text}")
    return r.json()


async def replay(
    client: httpx.AsyncClient,
    pet_id: int,
    positions: GpxPositionSource,
    *,
    source: str = "user",
    keep_running: bool = False,
) -> tuple[int, dict | None]:
    """Push every sample of ``positions`` into a fresh session; returns (count, last status)."""
    check(await client.post(f"/tracking/sessions/{pet_id}", json={"source": source}))
    count = 0
    status = None
    async for sample in positions:
        payload = {
            "latitude": sample.latitude,
            "longitude": sample.longitude,
            "accuracy": sample.accuracy,
            "observed_at": sample.observed_at,
        }
        status = check(await client.post(f"/tracking/sessions/{pet_id}/positions", json=payload))
        count += 1
    if not keep_running:
        check(await client.delete(f"/tracking/sessions/{pet_id}"))
    return count, status


async def run(args) -> int:
    with open(args.gpx, "r", encoding="utf-8") as f:
        samples = parse_gpx_samples(f.read())
    if not samples:
        raise SystemExit("No timestamped trackpoints in file")

    positions = GpxPositionSource(samples, speedup=args.speedup or None)
    async with httpx.AsyncClient(base_url=args.base_url.rstrip("/"), timeout=15) as client:
        count, status = await replay(
            client,
            args.pet_id,
            positions,
            source=args.source,
            keep_running=args.keep_running,
        )
    print(json.dumps(status, indent=2, default=str))
    return count


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay a GPX track into a live tracking session")
    ap.add_argument("gpx", help="Path to a .gpx file")
    ap.add_argument("--base-url", required=True, help="API base URL (e.g., http://localhost:8000)")
    ap.add_argument("--pet-id", type=int, required=True)
    ap.add_argument("--source", choices=["user", "admin"], default="user")
    ap.add_argument("--speedup", type=float, default=0.0, help="Sleep recorded gaps / speedup (0 = no pacing)")
    ap.add_argument("--keep-running", action="store_true", help="Leave the session running afterwards")
    args = ap.parse_args()

    count = asyncio.run(run(args))
    print(f"Replayed {count} positions.")


if __name__ == "__main__":
    main()
