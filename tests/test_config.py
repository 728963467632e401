import json

import pytest

from avl_stack.l0_core.events import Codec, Transport
from avl_stack.l3_domain.config import DecoderConfig, config_from_mapping, load_config


def test_defaults():
    cfg = DecoderConfig()
    assert cfg.codec is Codec.C8
    assert cfg.transport is Transport.STREAM
    assert cfg.log_level == "INFO"


def test_load_yaml(tmp_path):
    p = tmp_path / "tracker.yaml"
    p.write_text('codec: "8E"\ntransport: udp\nbaudrate: 9600\nlog_level: debug\n')
    cfg = load_config(p)
    assert cfg.codec is Codec.C8E
    assert cfg.transport is Transport.DATAGRAM
    assert cfg.baudrate == 9600
    assert cfg.log_level == "DEBUG"


def test_load_yaml_numeric_codec(tmp_path):
    p = tmp_path / "tracker.yml"
    p.write_text("codec: 16\n")
    assert load_config(p).codec is Codec.C16


def test_load_json(tmp_path):
    p = tmp_path / "tracker.json"
    p.write_text(json.dumps({"codec": "16", "device": "/dev/ttyS1"}))
    cfg = load_config(p)
    assert cfg.codec is Codec.C16
    assert cfg.device == "/dev/ttyS1"
    assert cfg.transport is Transport.STREAM


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_bad_values():
    with pytest.raises(ValueError):
        config_from_mapping({"codec": "9"})
    with pytest.raises(ValueError):
        config_from_mapping({"transport": "serial"})
    with pytest.raises(ValueError):
        config_from_mapping({"log_level": "loud"})
    with pytest.raises(ValueError):
        config_from_mapping({"baudrate": 0})


def test_non_mapping_file(tmp_path):
    p = tmp_path / "tracker.yaml"
    p.write_text("- 8\n- 16\n")
    with pytest.raises(ValueError):
        load_config(p)
