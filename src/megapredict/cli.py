from __future__ import annotations

import argparse
import asyncio
import json
import sys

import httpx

from .config import load_config


def _headers(cron_secret: str | None) -> dict[str, str]:
    if cron_secret is None:
        return {}
    return {"Authorization": f"Bearer {cron_secret}"}


def format_status(snapshot: dict) -> str:
    seconds_left = int(snapshot.get("seconds_left") or 0)
    lines = [
        f"Round:      {snapshot.get('round_number')} ({snapshot.get('state', 'unknown')})",
        f"Price:      {snapshot.get('current_price')}",
        f"Start:      {snapshot.get('start_price')}",
        f"Prediction: {snapshot.get('prediction')} ({snapshot.get('confidence')}%)",
        f"Time left:  {seconds_left // 60} min {seconds_left % 60} sec",
        f"Next round: {snapshot.get('next_round_time')}",
    ]
    return "\n".join(lines)


def run_command(args: argparse.Namespace, client: httpx.Client, cron_secret: str | None) -> dict:
    if args.command == "start":
        response = client.post("/api/start-round", headers=_headers(cron_secret))
    elif args.command == "resolve":
        body = {"round_number": args.round} if args.round is not None else None
        response = client.post("/api/resolve-round", json=body, headers=_headers(cron_secret))
    elif args.command == "status":
        response = client.get("/api/round")
    elif args.command == "rounds":
        response = client.get("/api/rounds", params={"limit": args.limit})
    else:
        raise ValueError(f"unsupported command: {args.command}")

    response.raise_for_status()
    return response.json()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="megapredict", description="Operate MegaPredict prediction rounds")
    parser.add_argument("--base-url", default=None, help="API base URL (defaults to API_BASE_URL)")
    parser.add_argument("--timeout-seconds", type=float, default=10.0)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the API and the round scheduler")
    sub.add_parser("start", help="Start a new round now")
    resolve = sub.add_parser("resolve", help="Resolve the current round now")
    resolve.add_argument("--round", type=int, default=None, help="Only resolve if this round is current")
    sub.add_parser("status", help="Show the current round")
    rounds = sub.add_parser("rounds", help="List persisted rounds")
    rounds.add_argument("--limit", type=int, default=20)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()

    if args.command == "serve":
        from .service import serve

        asyncio.run(serve())
        return 0

    base_url = (args.base_url or config.api_base_url).rstrip("/")
    try:
        with httpx.Client(base_url=base_url, timeout=args.timeout_seconds) as client:
            result = run_command(args, client, config.cron_secret)
    except httpx.HTTPStatusError as exc:
        print(f"error: HTTP {exc.response.status_code} {exc.response.text}", file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.command == "status":
        print(format_status(result))
    else:
        print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
