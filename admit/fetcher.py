"""
admit.fetcher
~~~~~~~~~~~~~
Where the allow-list comes from.  The reference source is a JSON file:

nodes.json
----------
[
  "nodekey:8d1e4a...",
  "nodekey:03b7c2..."
]
"""

from __future__ import annotations

import asyncio
import json
import pathlib
from typing import FrozenSet, Protocol

from .keys import KeyFormatError, NodePublic

Snapshot = FrozenSet[NodePublic]


class FetchError(Exception):
    pass


class DecodeError(FetchError):
    pass


class Fetcher(Protocol):
    async def fetch(self) -> Snapshot:
        """Return the complete allow-list or raise FetchError."""
        ...


class FileFetcher:
    def __init__(self, path: str | pathlib.Path):
        self.path = pathlib.Path(path)

    async def fetch(self) -> Snapshot:
        return await asyncio.to_thread(self._load)

    def _load(self) -> Snapshot:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise FetchError(f"{self.path}: {e.strerror or e}") from e
        return decode_nodes(text)


def decode_nodes(text: str) -> Snapshot:
    """Parse a JSON array of node keys.  ``null`` means nobody."""
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise DecodeError(f"invalid JSON: {e}") from e

    if doc is None:
        return frozenset()
    if not isinstance(doc, list):
        raise DecodeError("expected a JSON array of node keys")

    nodes = set()
    for i, item in enumerate(doc):
        if not isinstance(item, str):
            raise DecodeError(f"entry {i}: expected string")
        try:
            nodes.add(NodePublic.parse(item))
        except KeyFormatError as e:
            raise DecodeError(f"entry {i}: {e}") from e
    return frozenset(nodes)
