#!/usr/bin/env python3
"""Fake child program for integration testing.

Writes configurable amounts of data to stdout/stderr, reports its
environment or working directory, echoes stdin, and optionally traps
SIGTERM to exit gracefully.

Usage:
    python fake_child.py [--stdout-bytes N] [--stderr-bytes N] [--exit-code CODE]
                         [--print-cwd] [--print-env] [--echo-stdin]
                         [--trap-term] [--sleep SECONDS]
"""

from __future__ import annotations

import argparse
import os
import signal
import sys
import time
from typing import NoReturn


def signal_handler(signum: int, frame) -> None:
    """Exit the way a well-behaved CLI does on SIGTERM."""
    sys.stderr.write(f"Received {signal.Signals(signum).name}, stopping gracefully\n")
    sys.stderr.flush()
    # 143 for SIGTERM (128 + 15)
    os._exit(128 + signum)


def write_bulk(stream, total: int, fill: bytes) -> None:
    """Write `total` bytes of `fill` in 64 KiB blocks."""
    block = fill * (64 * 1024)
    remaining = total
    while remaining > 0:
        piece = block[: min(len(block), remaining)]
        stream.write(piece)
        remaining -= len(piece)
    stream.flush()


def main() -> NoReturn:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Fake child for testing")
    parser.add_argument("--stdout-bytes", type=int, default=0)
    parser.add_argument("--stderr-bytes", type=int, default=0)
    parser.add_argument("--exit-code", type=int, default=0)
    parser.add_argument("--print-cwd", action="store_true")
    parser.add_argument("--print-env", action="store_true")
    parser.add_argument("--echo-stdin", action="store_true")
    parser.add_argument("--trap-term", action="store_true")
    parser.add_argument("--sleep", type=float, default=0.0)
    args = parser.parse_args()

    out = sys.stdout.buffer
    err = sys.stderr.buffer

    if args.trap_term:
        signal.signal(signal.SIGTERM, signal_handler)
        # Tell the parent the handler is installed
        out.write(b"ready\n")
        out.flush()

    if args.echo_stdin:
        out.write(sys.stdin.buffer.read())
        out.flush()

    if args.print_cwd:
        out.write(os.getcwd().encode() + b"\n")
        out.flush()

    if args.print_env:
        for name, value in os.environ.items():
            out.write(f"{name}={value}\n".encode())
        out.flush()

    # Interleave so neither stream finishes long before the other
    if args.stderr_bytes:
        write_bulk(err, args.stderr_bytes // 2, b"e")
    if args.stdout_bytes:
        write_bulk(out, args.stdout_bytes, b"o")
    if args.stderr_bytes:
        write_bulk(err, args.stderr_bytes - args.stderr_bytes // 2, b"e")

    if args.sleep:
        time.sleep(args.sleep)

    sys.exit(args.exit_code)


if __name__ == "__main__":
    main()
