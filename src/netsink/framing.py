from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Final, Union

from .errors import PayloadTooLarge

"""
MAC-LTE capture framing

Each framed record is the context header followed directly by the PDU:

  "mac-lte" radioType direction rntiType
  RNTI_TAG rnti(BE16) UEID_TAG ueid(BE16)
  FRAME_SUBFRAME_TAG (sfn << 4 | sf)(BE16)
  CRC_STATUS_TAG crc(u8)
  PAYLOAD_TAG <pdu bytes...>

There is no length field for the PDU; the collector takes it from the
datagram (or its own stream convention).
"""

MAC_LTE_START_STRING: Final[bytes] = b"mac-lte"

MAC_LTE_PAYLOAD_TAG: Final[int] = 0x01
MAC_LTE_RNTI_TAG: Final[int] = 0x02
MAC_LTE_UEID_TAG: Final[int] = 0x03
MAC_LTE_FRAME_SUBFRAME_TAG: Final[int] = 0x04
MAC_LTE_CRC_STATUS_TAG: Final[int] = 0x07

# marker, 3 context bytes, rnti/ueid/frame fields, crc field, payload tag
_HEADER = struct.Struct(f"!{len(MAC_LTE_START_STRING)}sBBB BH BH BH BB B")
HEADER_SIZE: Final[int] = _HEADER.size

# The record used to be assembled in a 16000 byte scratch buffer.
RECORD_BUFFER_SIZE: Final[int] = 16000
DEFAULT_MAX_PAYLOAD: Final[int] = RECORD_BUFFER_SIZE - HEADER_SIZE


class RadioType(IntEnum):
    FDD = 1
    TDD = 2


class Direction(IntEnum):
    UPLINK = 0
    DOWNLINK = 1


class RntiType(IntEnum):
    NO_RNTI = 0
    P_RNTI = 1
    RA_RNTI = 2
    C_RNTI = 3
    SI_RNTI = 4
    SPS_RNTI = 5
    M_RNTI = 6
    SL_BCH_RNTI = 7
    SL_RNTI = 8
    SC_RNTI = 9
    G_RNTI = 10


# This function checks that a value fits an unsigned field of the given width.
def _check_range(name: str, value: int, bits: int) -> int:
    value = int(value)
    hi = (1 << bits) - 1
    if not (0 <= value <= hi):
        raise ValueError(f"{name} must be between 0 and {hi}; got {value}")
    return value


@dataclass(frozen=True)
class MacContext:
    """Per-PDU metadata copied into the context header."""

    radio_type: int = RadioType.FDD
    direction: int = Direction.DOWNLINK
    rnti_type: int = RntiType.C_RNTI
    rnti: int = 0
    ueid: int = 0
    sys_frame_number: int = 0
    sub_frame_number: int = 0
    crc_status_ok: Union[bool, int] = True

    def __post_init__(self) -> None:
        _check_range("radio_type", self.radio_type, 8)
        _check_range("direction", self.direction, 8)
        _check_range("rnti_type", self.rnti_type, 8)
        _check_range("rnti", self.rnti, 16)
        _check_range("ueid", self.ueid, 16)
        _check_range("sys_frame_number", self.sys_frame_number, 12)
        _check_range("sub_frame_number", self.sub_frame_number, 4)
        _check_range("crc_status_ok", int(self.crc_status_ok), 8)

    @property
    def frame_subframe(self) -> int:
        """SFN in the 12 most significant bits, subframe in the 4 least."""
        return (int(self.sys_frame_number) << 4) | int(self.sub_frame_number)


# This function lists the header fields in wire order.
def _header_fields(ctx: MacContext) -> tuple:
    return (
        MAC_LTE_START_STRING,
        int(ctx.radio_type),
        int(ctx.direction),
        int(ctx.rnti_type),
        MAC_LTE_RNTI_TAG,
        int(ctx.rnti),
        MAC_LTE_UEID_TAG,
        int(ctx.ueid),
        MAC_LTE_FRAME_SUBFRAME_TAG,
        ctx.frame_subframe,
        MAC_LTE_CRC_STATUS_TAG,
        int(ctx.crc_status_ok),
        MAC_LTE_PAYLOAD_TAG,
    )


# This function builds the fixed-size context header for one PDU.
def build_context_header(ctx: MacContext) -> bytes:
    return _HEADER.pack(*_header_fields(ctx))


# This function checks the payload size, in bytes, against the limit.
def check_payload_size(payload: bytes, max_payload: int = DEFAULT_MAX_PAYLOAD) -> None:
    size = memoryview(payload).nbytes
    if size > max_payload:
        raise PayloadTooLarge(size, max_payload)


def frame_record(
    ctx: MacContext, payload: bytes, *, max_payload: int = DEFAULT_MAX_PAYLOAD
) -> bytes:
    """
    Return the context header followed by the payload, as one buffer.

    Raises:
        PayloadTooLarge: if the payload is longer than max_payload
    """
    check_payload_size(payload, max_payload)
    data = memoryview(payload).tobytes()
    buf = bytearray(HEADER_SIZE + len(data))
    _HEADER.pack_into(buf, 0, *_header_fields(ctx))
    buf[HEADER_SIZE:] = data
    return bytes(buf)


__all__ = [
    "MAC_LTE_START_STRING",
    "MAC_LTE_PAYLOAD_TAG",
    "MAC_LTE_RNTI_TAG",
    "MAC_LTE_UEID_TAG",
    "MAC_LTE_FRAME_SUBFRAME_TAG",
    "MAC_LTE_CRC_STATUS_TAG",
    "HEADER_SIZE",
    "RECORD_BUFFER_SIZE",
    "DEFAULT_MAX_PAYLOAD",
    "RadioType",
    "Direction",
    "RntiType",
    "MacContext",
    "build_context_header",
    "check_payload_size",
    "frame_record",
]
