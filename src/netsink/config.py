from __future__ import annotations

import ipaddress
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, field_validator, model_validator

from .framing import DEFAULT_MAX_PAYLOAD, MacContext
from .sink import NetworkSink, TransportKind

"""
Config layer
- load_yaml(path) -> dict
- SinkConfig / FramingConfig (Pydantic v2) + validate_config(raw) -> SinkConfig
- build_sink(cfg) -> NetworkSink

Example:

  address: 127.0.0.1
  port: 5847
  transport: udp
  nonblocking: true
  framing:
    radio_type: 1
    direction: 1
    rnti_type: 3
    rnti: 4660
"""


#This function loads and parses YAML into a raw dictionary using yaml.safe_load.
def load_yaml(path: str) -> Dict[str, Any]:
    """
    Load and parse YAML into raw dict using yaml.safe_load.

    Raises:
        FileNotFoundError: if the file does not exist
        yaml.YAMLError: if YAML is malformed/unsafe
        ValueError: if the top-level document is not a mapping
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        # Treat empty file as empty mapping
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML must be a mapping/dict (file: {path})")
    return data


# Pydantic model for the per-PDU context used by framed writes
class FramingConfig(BaseModel):
    radio_type: int = 1  # FDD
    direction: int = 1  # downlink
    rnti_type: int = 3  # C-RNTI
    rnti: int = 0
    ueid: int = 0
    sys_frame_number: int = 0
    sub_frame_number: int = 0
    crc_status_ok: bool = True

    # Field widths are checked once, by MacContext itself.
    @model_validator(mode="after")
    def _fits_context_header(self) -> "FramingConfig":
        self.to_context()
        return self

    def to_context(self) -> MacContext:
        return MacContext(**self.model_dump())


# Pydantic config model for one sink
class SinkConfig(BaseModel):
    address: str
    port: int
    transport: str = "udp"
    nonblocking: bool = True
    max_payload: int = DEFAULT_MAX_PAYLOAD
    interval: float = 0.0
    framing: Optional[FramingConfig] = None

    # --- Validators ---

    #This validator checks the address is a dotted-quad IPv4 address.
    @field_validator("address")
    @classmethod
    def _ipv4_only(cls, v: str) -> str:
        try:
            return str(ipaddress.IPv4Address(v.strip()))
        except ValueError:
            raise ValueError("address must be a dotted-quad IPv4 address") from None

    @field_validator("port")
    @classmethod
    def _port_in_range(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            raise ValueError("port must be 1..65535")
        return v

    #This validator normalizes the transport to 'tcp' or 'udp'.
    @field_validator("transport")
    @classmethod
    def _tcp_or_udp(cls, v: str) -> str:
        return TransportKind.parse(v).value

    @field_validator("max_payload")
    @classmethod
    def _payload_limit(cls, v: int) -> int:
        if not (1 <= v <= DEFAULT_MAX_PAYLOAD):
            raise ValueError(f"max_payload must be 1..{DEFAULT_MAX_PAYLOAD}")
        return v

    @field_validator("interval")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        v = float(v)
        if v < 0.0:
            raise ValueError("interval must be >= 0")
        return v


#This function validates and normalizes a raw dictionary into a SinkConfig object using Pydantic's model_validate.
def validate_config(raw: dict[str, Any]) -> SinkConfig:
    return SinkConfig.model_validate(raw)


# This function builds a sink from a validated config.
def build_sink(cfg: SinkConfig, **kwargs: Any) -> NetworkSink:
    sink = NetworkSink(
        cfg.address,
        cfg.port,
        TransportKind.parse(cfg.transport),
        max_payload=cfg.max_payload,
        **kwargs,
    )
    if cfg.nonblocking:
        try:
            sink.set_nonblocking()
        except Exception:
            sink.free()
            raise
    return sink


__all__ = ["load_yaml", "FramingConfig", "SinkConfig", "validate_config", "build_sink"]
