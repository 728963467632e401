"""avl_stack - decoder for AVL tracker telemetry packets (codec 8, 8E and 16)."""

from avl_stack.l0_core import Codec, Transport, DecodeResult, DecodeError  # noqa: F401
from avl_stack.l2_avl.avl_decode import decode, decode_hex  # noqa: F401

__all__ = ["Codec", "Transport", "DecodeResult", "DecodeError", "decode", "decode_hex"]
