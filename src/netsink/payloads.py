from __future__ import annotations

import binascii
from typing import Iterable, Iterator, Optional

from .log import get_logger

"""
Hex PDU input

One PDU per line, as hex. Accepted separators: spaces, ':' and '-'; an
optional leading 0x. Blank lines and lines starting with '#' are skipped.

  # DL-SCH
  3c 1f 00 a2 10
  0x3c1f00a210
"""

_LOG = get_logger(__name__)
_SEPARATORS = str.maketrans("", "", " \t:-")


# This function parses one line of hex into bytes (None for blank/comment lines).
def parse_hex_line(line: str) -> Optional[bytes]:
    text = line.strip()
    if not text or text.startswith("#"):
        return None
    if text[:2].lower() == "0x":
        text = text[2:]
    text = text.translate(_SEPARATORS)
    if not text:
        raise ValueError(f"empty PDU {line.strip()!r}")
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid hex PDU {line.strip()!r}: {e}") from None


def iter_payloads(lines: Iterable[str]) -> Iterator[bytes]:
    """Yield the PDUs in lines; bad lines are logged and skipped."""
    for lineno, line in enumerate(lines, start=1):
        try:
            pdu = parse_hex_line(line)
        except ValueError as e:
            _LOG.error("line %d: %s", lineno, e)
            continue
        if pdu is not None:
            yield pdu


__all__ = ["parse_hex_line", "iter_payloads"]
