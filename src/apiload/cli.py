from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from apiload.config import CredentialMode, HttpMethod, RunConfig, TransportConfig, load_settings
from apiload.loadgen.cancel import AnyStop, KeyboardStop, StopSource, TimerStop
from apiload.loadgen.runner import LoadRunner
from apiload.metrics import render_summary

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        msg = f"must be at least 1, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def _non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        msg = f"must not be negative, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        msg = f"must be positive, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Concurrent HTTP load generator")
    parser.add_argument("--target", help="Target URL (default: $APILOAD_URL)")
    parser.add_argument("--key", help="bootKey credential (default: $APILOAD_KEY)")
    parser.add_argument("--method", choices=[m.value for m in HttpMethod], default="POST", type=str.upper)
    parser.add_argument("--concurrency", type=_positive_int, default=1, help="Concurrent workers")
    parser.add_argument("--requests", type=_positive_int, default=1, help="Requests per worker")
    parser.add_argument("--delay", type=_non_negative_float, default=30.0, help="Delay between requests (sec)")
    body = parser.add_mutually_exclusive_group()
    body.add_argument("--body", help="Raw JSON body sent instead of the generated payload")
    body.add_argument("--body-file", type=Path, help="File holding the raw JSON body")
    parser.add_argument(
        "--auth-header",
        action="store_true",
        help="Send the key as an Authorization header instead of in the payload or query",
    )
    parser.add_argument("--timeout", type=_positive_float, help="Per-request timeout (sec)")
    parser.add_argument("--stop-after", type=_non_negative_float, help="Stop the run after this many seconds")
    parser.add_argument("--no-keyboard", action="store_true", help="Do not watch stdin for 's' to stop")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def config_from_args(args: argparse.Namespace, parser: argparse.ArgumentParser) -> RunConfig:
    try:
        settings = load_settings()
    except ValueError as exc:
        parser.error(str(exc))
    url = (args.target or settings.url or "").strip()
    if not url:
        parser.error("no target URL given (use --target or set APILOAD_URL)")
    body = args.body
    if args.body_file is not None:
        try:
            body = args.body_file.read_text(encoding="utf-8")
        except OSError as exc:
            parser.error(f"cannot read body file: {exc}")
    timeout = args.timeout if args.timeout is not None else settings.timeout_sec
    return RunConfig(
        url=url,
        method=HttpMethod(args.method),
        credential=args.key if args.key is not None else settings.credential,
        concurrency=args.concurrency,
        requests_per_worker=args.requests,
        delay_sec=args.delay,
        body=body,
        credential_mode=CredentialMode.HEADER if args.auth_header else CredentialMode.EMBED,
        transport=TransportConfig(timeout_sec=timeout),
    )


def _stop_source(args: argparse.Namespace) -> StopSource | None:
    sources: list[StopSource] = []
    if not args.no_keyboard and sys.stdin.isatty():
        sources.append(KeyboardStop())
    if args.stop_after is not None:
        sources.append(TimerStop(args.stop_after))
    if not sources:
        return None
    return sources[0] if len(sources) == 1 else AnyStop(*sources)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT, datefmt="%H:%M:%S")
    config = config_from_args(args, parser)

    stop_source = _stop_source(args)
    print(f"Target: {config.url}")
    print(f"bootKey: {config.to_metadata()['credential']}")
    print(f"Workers: {config.concurrency}, Requests/Worker: {config.requests_per_worker}, Delay: {config.delay_sec}s")
    if isinstance(stop_source, (KeyboardStop, AnyStop)):
        print("Running... type 's' and press Enter to stop.")

    runner = LoadRunner(stop_source=stop_source)
    try:
        summary = asyncio.run(runner.run(config))
    except KeyboardInterrupt:
        print("Interrupted.")
        return 130
    print()
    print(render_summary(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
