#!/usr/bin/env python3
"""
Ask a running PGN gateway to prefetch levels into its cache.

Mirrors the gateway prefetch endpoint so deploy jobs can warm the hot
levels right after a restart. Levels beyond the gateway's per-call cap
are sent in successive batches.
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

import httpx


def batch_levels(levels: List[str], size: int) -> List[List[str]]:
    """Split levels into request-sized batches."""
    size = max(1, size)
    return [levels[i:i + size] for i in range(0, len(levels), size)]


def prefetch(gateway_url: str, levels: List[str], *, batch_size: int, timeout: float,
             client: Optional[httpx.Client] = None) -> List[dict]:
    """Send prefetch requests and return each acknowledgment."""
    owned = client is None
    client = client or httpx.Client(base_url=gateway_url.rstrip('/'), timeout=timeout)
    try:
        acknowledgments = []
        for batch in batch_levels(levels, batch_size):
            response = client.get("/prefetch", params={"levels": ",".join(batch)})
            response.raise_for_status()
            acknowledgments.append(response.json())
        return acknowledgments
    finally:
        if owned:
            client.close()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Prefetch PGN levels into a running gateway.")
    parser.add_argument("levels", nargs="+", help="Levels to prefetch")
    parser.add_argument("--gateway-url", default=os.getenv("PGN_GATEWAY_URL", "http://localhost:5000"), help="Gateway base URL")
    parser.add_argument("--batch-size", type=int, default=int(os.getenv("PGN_PREFETCH_MAX_LEVELS", 5)), help="Levels per request")
    parser.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write JSON acknowledgments")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    try:
        acknowledgments = prefetch(
            args.gateway_url,
            args.levels,
            batch_size=args.batch_size,
            timeout=args.timeout,
        )
    except KeyboardInterrupt:
        return 130
    except httpx.HTTPError as exc:
        print(f"[prefetch] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(acknowledgments, indent=2))

    if args.output:
        args.output.write_text(json.dumps(acknowledgments, indent=2))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
