from __future__ import annotations

import argparse
import signal
import sys

from sockping.common import ListenerConfig, Mode, PingError, log
from sockping.tcp import run_tcp_client, spawn_tcp_listener
from sockping.udp import run_udp_client, spawn_udp_listener


def _non_negative(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def _add_common(parser: argparse.ArgumentParser, suppress_defaults: bool = False) -> None:
    """Options accepted both before and after the subcommand.

    Sub-parsers suppress their defaults so they don't overwrite values given
    before the subcommand.
    """
    def default(value):
        return argparse.SUPPRESS if suppress_defaults else value

    parser.add_argument(
        "-s",
        "--reset-sigpipe",
        action="store_true",
        default=default(False),
        help="Restore the default SIGPIPE handler (writes to a closed peer kill the process)",
    )
    parser.add_argument(
        "-t",
        "--accept-pings",
        type=_non_negative,
        default=default(None),
        metavar="N",
        help="Number of pings to accept before the listener stops reading (default: unbounded)",
    )
    parser.add_argument(
        "-m",
        "--mode",
        choices=[m.value for m in Mode],
        default=default(Mode.PING.value),
        help="ping: listener echoes and client waits for it; write: listener only logs (default: ping)",
    )


def _reset_sigpipe() -> None:
    log("Resetting SIGPIPE handler")
    # Not every platform has SIGPIPE.
    if hasattr(signal, "SIGPIPE"):
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)


def _describe(exc: PingError) -> str:
    if exc.__cause__ is not None:
        return f"{exc}: {exc.__cause__}"
    return str(exc)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sockping",
        description=(
            "Exercise local TCP or UDP connectivity: start a listener on an ephemeral loopback port "
            "and send it a ping every second."
        ),
    )
    _add_common(parser)
    sub = parser.add_subparsers(dest="cmd", required=True)
    _add_common(sub.add_parser("tcp", help="Ping a local TCP listener"), suppress_defaults=True)
    _add_common(sub.add_parser("udp", help="Ping a local UDP listener"), suppress_defaults=True)

    args = parser.parse_args(argv)

    if args.reset_sigpipe:
        _reset_sigpipe()

    mode = Mode(args.mode)
    config = ListenerConfig(accept_limit=args.accept_pings, mode=mode)

    try:
        if args.cmd == "tcp":
            addr = spawn_tcp_listener(config)
            log(f"TCP {mode.value} listening on {addr}")
            run_tcp_client(addr, mode)
            return 0

        if args.cmd == "udp":
            addr = spawn_udp_listener(config)
            log(f"UDP {mode.value} listening on {addr}")
            run_udp_client(addr, mode)
            return 0
    except PingError as exc:
        print(f"ERROR: {_describe(exc)}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    print(f"Unknown command: {args.cmd}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
