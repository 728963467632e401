from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import json

import yaml

from avl_stack.l0_core.events import Codec, Transport
from avl_stack.l0_core.errors import InvalidParameter
from avl_stack.l2_avl.avl_framing import DEFAULT_MAX_FRAME_SIZE

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True, slots=True)
class DecoderConfig:
    """
    Immutable settings for the decoder runners.

    Fields
    ------
    codec : Codec
        Codec the tracker is configured to send.
    transport : Transport
        Envelope around each packet.
    device : str
        Serial device the tracker is attached to (listen mode).
    baudrate : int
        Serial line speed.
    read_timeout : float
        Serial read timeout in seconds.
    max_frame_size : int
        Largest stream frame accepted before resynchronising.
    log_level : str
        Root logging level name.
    """
    codec: Codec = Codec.C8
    transport: Transport = Transport.STREAM
    device: str = "/dev/ttyUSB0"
    baudrate: int = 115200
    read_timeout: float = 0.05
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE
    log_level: str = "INFO"


def config_from_mapping(data: dict) -> DecoderConfig:
    """
    Build a DecoderConfig from a plain mapping; missing keys keep defaults.

    Raises ValueError on unknown codec/transport, bad numbers or log level.
    """
    defaults = DecoderConfig()
    try:
        codec = Codec.coerce(data.get("codec", defaults.codec))
        transport = Transport.coerce(data.get("transport", defaults.transport))
    except InvalidParameter as e:
        raise ValueError(str(e)) from e

    level = str(data.get("log_level", defaults.log_level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")

    baudrate = int(data.get("baudrate", defaults.baudrate))
    max_frame_size = int(data.get("max_frame_size", defaults.max_frame_size))
    if baudrate <= 0 or max_frame_size <= 0:
        raise ValueError("baudrate and max_frame_size must be positive")

    return DecoderConfig(
        codec=codec,
        transport=transport,
        device=str(data.get("device", defaults.device)),
        baudrate=baudrate,
        read_timeout=float(data.get("read_timeout", defaults.read_timeout)),
        max_frame_size=max_frame_size,
        log_level=level,
    )


def load_config(path: str | Path) -> DecoderConfig:
    """
    Load decoder config from a YAML or JSON file.

    Supported shapes:
      YAML:
        codec: "8E"
        transport: stream
        device: /dev/ttyUSB0
        baudrate: 115200

      JSON:
        {"codec": "16", "transport": "udp", "log_level": "DEBUG"}

    Raises FileNotFoundError / ValueError on bad input.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yml", ".yaml"}:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"{p}: top level must be a mapping")

    return config_from_mapping(data)
