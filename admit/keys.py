"""
admit.keys
~~~~~~~~~~
Node public keys as they travel on the wire:

    nodekey:8d1e4a...   (32 raw bytes, 64 hex digits)
"""

from __future__ import annotations

from dataclasses import dataclass

PREFIX = "nodekey:"
KEY_LEN = 32


class KeyFormatError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class NodePublic:
    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)) or len(self.raw) != KEY_LEN:
            raise KeyFormatError(f"node key must be {KEY_LEN} bytes")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def parse(cls, text: str) -> "NodePublic":
        """Decode the ``nodekey:<hex>`` text form."""
        if not isinstance(text, str) or not text.startswith(PREFIX):
            raise KeyFormatError(f"missing {PREFIX!r} prefix")
        digits = text[len(PREFIX):]
        if len(digits) != KEY_LEN * 2:
            raise KeyFormatError("wrong key length")
        try:
            return cls(bytes.fromhex(digits))
        except ValueError as e:
            raise KeyFormatError("bad hex") from e

    def __str__(self) -> str:
        return PREFIX + self.raw.hex()
