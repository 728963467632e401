#!/usr/bin/env python3
"""
AVL Decoder CLI
===============

Command-line front end for the AVL decoder stack.

Uses:
- L2 avl_decode: decodes hex strings or binary capture files (`decode`).
- L2 AvlService: decodes frames arriving on a serial port (`listen`).

Examples:
    python apps/avl_cli.py decode --codec 8 --transport stream 000000000000003608...
    python apps/avl_cli.py decode --codec 16 --transport udp --file capture.bin
    python apps/avl_cli.py listen --config tracker.yaml
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from avl_stack.l0_core.events import DecodedPacket, Transport
from avl_stack.l0_core.errors import DecodeError
from avl_stack.l1_drivers.pyserial_port import PySerialPort
from avl_stack.l1_drivers.serial_port import SerialError
from avl_stack.l2_avl.avl_decode import decode, decode_hex
from avl_stack.l2_avl.avl_service import AvlService
from avl_stack.l3_domain.config import DecoderConfig, config_from_mapping, load_config

log = logging.getLogger("avl_cli")


def _build_config(args: argparse.Namespace) -> DecoderConfig:
    """Config file first, then any flags given on the command line."""
    base = load_config(args.config) if args.config else DecoderConfig()
    data = {
        "codec": base.codec,
        "transport": base.transport,
        "device": base.device,
        "baudrate": base.baudrate,
        "read_timeout": base.read_timeout,
        "max_frame_size": base.max_frame_size,
        "log_level": base.log_level,
    }
    for key in ("codec", "transport", "device", "baudrate", "log_level"):
        value = getattr(args, key, None)
        if value is not None:
            data[key] = value
    return config_from_mapping(data)


def _print_json(obj: dict) -> None:
    print(json.dumps(obj, indent=2))


def cmd_decode(args: argparse.Namespace, cfg: DecoderConfig) -> int:
    inputs: list[tuple[str, bytes | str]] = []
    for path in args.file or []:
        inputs.append((path, Path(path).read_bytes()))
    for text in args.hex or []:
        inputs.append(("<hex>", text))
    if not inputs:
        log.error("nothing to decode: pass hex strings or --file")
        return 2

    status = 0
    for source, data in inputs:
        try:
            if isinstance(data, str):
                result = decode_hex(cfg.codec, cfg.transport, data)
            else:
                result = decode(cfg.codec, cfg.transport, data)
        except DecodeError as exc:
            print(f"{source}: {type(exc).__name__}: {exc}", file=sys.stderr)
            status = 1
            continue
        except ValueError as exc:  # not valid hex
            print(f"{source}: {exc}", file=sys.stderr)
            status = 1
            continue
        _print_json(result.as_dict())
    return status


def cmd_listen(args: argparse.Namespace, cfg: DecoderConfig) -> int:
    if cfg.transport is not Transport.STREAM:
        log.error("listen supports the stream transport only")
        return 2

    def _on_packet(packet: DecodedPacket) -> None:
        out = packet.result.as_dict()
        out["received_millis"] = packet.received_millis
        _print_json(out)

    port = PySerialPort(cfg.device, cfg.baudrate, timeout=cfg.read_timeout)
    svc = AvlService(port, cfg.codec, on_packet=_on_packet,
                     max_frame_size=cfg.max_frame_size)
    try:
        svc.open()
    except SerialError as exc:
        log.error("%s", exc)
        return 1

    log.info("Listening on %s for codec %s frames (Ctrl+C to exit)", cfg.device, cfg.codec.name)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nExiting...")
    finally:
        svc.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="AVL tracker packet decoder")
    parser.add_argument("--config", help="YAML or JSON config file")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ...")
    sub = parser.add_subparsers(dest="command", required=True)

    p_dec = sub.add_parser("decode", help="Decode hex strings or binary files")
    p_dec.add_argument("hex", nargs="*", help="Packet as a hex string")
    p_dec.add_argument("--file", action="append", help="Binary file holding one packet")
    p_dec.add_argument("--codec", help="8, 8E or 16")
    p_dec.add_argument("--transport", help="stream/tcp or datagram/udp")

    p_lis = sub.add_parser("listen", help="Decode stream frames from a serial device")
    p_lis.add_argument("--device", help="Serial device path")
    p_lis.add_argument("--baud", dest="baudrate", type=int, help="Baud rate")
    p_lis.add_argument("--codec", help="8, 8E or 16")

    args = parser.parse_args(argv)

    try:
        cfg = _build_config(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"config error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "decode":
        return cmd_decode(args, cfg)
    return cmd_listen(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
