from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from typing import Any, Sequence
from urllib.parse import quote

import aiohttp

REQUEST_ID_HEADER = "x-request-id"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ember-cache")
    parser.add_argument(
        "--target",
        default="http://127.0.0.1:8080",
        help="base URL of the cache service",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="per-request timeout in seconds",
    )
    parser.add_argument(
        "--request-id",
        default=None,
        help="override request id sent as x-request-id",
    )
    parser.add_argument(
        "--show-request-id",
        action="store_true",
        help="print the server x-request-id response header to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    get_parser = subparsers.add_parser("get", help="get a value")
    get_parser.add_argument("key")

    put_parser = subparsers.add_parser("put", help="store a value")
    put_parser.add_argument("key")
    put_parser.add_argument("value", help="value as text, or JSON with --json")
    put_parser.add_argument("--ttl", type=float, default=None, help="ttl seconds (<= 0 means cache default)")
    put_parser.add_argument("--json", action="store_true", help="parse the value as JSON")

    delete_parser = subparsers.add_parser("delete", help="delete a key")
    delete_parser.add_argument("key")

    subparsers.add_parser("clear", help="remove every entry")
    subparsers.add_parser("stats", help="print cache statistics as json")
    subparsers.add_parser("persist", help="write a snapshot through the persistence adapter")
    subparsers.add_parser("restore", help="replace the contents with the stored snapshot")

    return parser


def _parse_value(args: argparse.Namespace) -> Any:
    if args.json:
        return json.loads(args.value)
    return args.value


def _item_url(target: str, key: str) -> str:
    return f"{target.rstrip('/')}/items/{quote(key, safe='')}"


def _print_request_id(args: argparse.Namespace, response: aiohttp.ClientResponse) -> None:
    response_request_id = response.headers.get(REQUEST_ID_HEADER)
    if args.show_request_id and response_request_id:
        print(f"{REQUEST_ID_HEADER}={response_request_id}", file=sys.stderr)


async def _request(
    session: aiohttp.ClientSession,
    args: argparse.Namespace,
    method: str,
    url: str,
    **kwargs: Any,
) -> tuple[int, Any]:
    async with session.request(method, url, **kwargs) as response:
        _print_request_id(args, response)
        payload = await response.json(content_type=None)
        return response.status, payload


async def run(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    request_id = args.request_id or uuid.uuid4().hex
    base = args.target.rstrip("/")
    timeout = aiohttp.ClientTimeout(total=args.timeout)

    try:
        async with aiohttp.ClientSession(headers={REQUEST_ID_HEADER: request_id}, timeout=timeout) as session:
            if args.command == "get":
                status, payload = await _request(session, args, "GET", _item_url(base, args.key))
                if status == 404:
                    return 1
                if status != 200:
                    print(f"error: {payload.get('message', status)}", file=sys.stderr)
                    return 2
                print(json.dumps(payload["value"]))
                return 0

            if args.command == "put":
                body = {"value": _parse_value(args), "ttl": args.ttl}
                status, payload = await _request(session, args, "PUT", _item_url(base, args.key), json=body)
            elif args.command == "delete":
                status, payload = await _request(session, args, "DELETE", _item_url(base, args.key))
            elif args.command == "clear":
                status, payload = await _request(session, args, "DELETE", f"{base}/items")
            elif args.command == "stats":
                status, payload = await _request(session, args, "GET", f"{base}/stats")
                if status == 200:
                    print(json.dumps(payload))
                    return 0
            elif args.command in ("persist", "restore"):
                status, payload = await _request(session, args, "POST", f"{base}/{args.command}")
            else:
                parser.error(f"unknown command: {args.command}")
                return 2

            if status != 200:
                print(f"error: {payload.get('message', status)}", file=sys.stderr)
                return 2
            print("OK")
            return 0
    except aiohttp.ClientError as exc:
        print(f"request failed: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


def main() -> None:
    raise SystemExit(asyncio.run(run()))


if __name__ == "__main__":
    main()
