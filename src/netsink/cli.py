from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError
from yaml import YAMLError

from .config import FramingConfig, SinkConfig, build_sink, load_yaml, validate_config
from .errors import FatalConnectError, SocketCreationError
from .log import get_logger, set_level
from .payloads import iter_payloads
from .stream import run_stream

"""
CLI entrypoint

Usage:
  python -m netsink.cli --config /path/netsink.yaml [--framed] [--interval S] [INPUT]

Behavior:
  - Loads & validates config
  - Reads hex PDUs (one per line) from INPUT or stdin
  - Streams them through one NetworkSink, dropping what cannot be sent yet
  - All diagnostics/logs go to STDERR

Exit status: 0 ok, 1 config/unexpected error, 2 fatal socket error, 130 interrupted.
"""

_LOG = get_logger(__name__)
_DEFAULT_CONFIG = "/etc/netsink.yaml"


# This function parses a non-negative number of seconds for --interval.
def _seconds(text: str) -> float:
    try:
        v = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if v < 0.0:
        raise argparse.ArgumentTypeError("interval must be >= 0")
    return v


# This function builds the parser for the CLI.
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="netsink", description="Stream hex-encoded PDUs to a TCP/UDP collector"
    )
    p.add_argument(
        "-c",
        "--config",
        default=_DEFAULT_CONFIG,
        help=f"Path to YAML config (default: {_DEFAULT_CONFIG})",
    )
    p.add_argument(
        "--framed",
        action="store_true",
        help="Prefix each PDU with the MAC-LTE context header from the config 'framing' section.",
    )
    p.add_argument(
        "--interval",
        type=_seconds,
        default=None,
        help="Seconds between PDUs (overrides the config value).",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level.")
    p.add_argument(
        "input",
        nargs="?",
        default="-",
        help="File with one hex PDU per line ('-' for stdin, the default).",
    )
    return p


# This function loads and validates the config, logging the reason on failure.
def _load_config(path: str) -> Optional[SinkConfig]:
    try:
        raw = load_yaml(path)
        return validate_config(raw)
    except FileNotFoundError:
        _LOG.error("Config file not found: %s", path)
    except YAMLError as e:
        _LOG.error("Failed to parse YAML config (%s): %s", path, e)
    except ValidationError as e:
        _LOG.error("Config validation error: %s", e)
    except ValueError as e:
        _LOG.error("Invalid config (%s): %s", path, e)
    return None


# This function is the main function for the CLI.
def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        set_level(logging.DEBUG)

    cfg = _load_config(args.config)
    if cfg is None:
        return 1

    interval = cfg.interval if args.interval is None else args.interval
    context = None
    if args.framed:
        context = (cfg.framing or FramingConfig()).to_context()

    try:
        sink = build_sink(cfg)
    except (SocketCreationError, FatalConnectError) as e:
        _LOG.error("cannot open sink: %s", e)
        return 2
    except Exception as e:
        _LOG.exception("Unexpected error opening sink: %s", e)
        return 1

    try:
        if args.input == "-":
            result = run_stream(sink, iter_payloads(sys.stdin), context=context, interval=interval)
        else:
            with open(args.input, "r", encoding="utf-8") as f:
                result = run_stream(sink, iter_payloads(f), context=context, interval=interval)
        _LOG.info(
            "done: %d sent (%d bytes), %d dropped, %d rejected",
            result.sent,
            result.bytes,
            result.dropped,
            result.rejected,
        )
        return 0
    except KeyboardInterrupt:
        _LOG.info("Interrupted, exiting.")
        return 130
    except (SocketCreationError, FatalConnectError) as e:
        _LOG.error("sink failed: %s", e)
        return 2
    except FileNotFoundError:
        _LOG.error("Input file not found: %s", args.input)
        return 1
    except Exception as e:
        _LOG.exception("Unexpected runtime error: %s", e)
        return 1
    finally:
        sink.free()


# Run the main function for the CLI.
if __name__ == "__main__":
    raise SystemExit(main())
