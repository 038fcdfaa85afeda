"""Tests for the allow-list fetchers."""

import asyncio
import json

import pytest

from admit.fetcher import DecodeError, FetchError, FileFetcher, decode_nodes
from admit.keys import NodePublic

K1 = "nodekey:" + "01" * 32
K2 = "nodekey:" + "02" * 32


class TestDecodeNodes:
    """Tests for decode_nodes()."""

    def test_array_of_keys(self):
        nodes = decode_nodes(json.dumps([K1, K2]))
        assert nodes == frozenset({NodePublic.parse(K1), NodePublic.parse(K2)})
        assert isinstance(nodes, frozenset)

    def test_duplicates_collapse(self):
        assert len(decode_nodes(json.dumps([K1, K1]))) == 1

    def test_null_is_empty(self):
        """JSON null admits nobody."""
        assert decode_nodes("null") == frozenset()

    def test_empty_array(self):
        assert decode_nodes("[]") == frozenset()

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "[",
            '{"nodes": []}',
            '"nodekey:00"',
            json.dumps([K1, 5]),
            json.dumps([K1, "nodekey:abc"]),
        ],
    )
    def test_malformed_is_decode_error(self, text):
        """Any bad entry fails the whole document."""
        with pytest.raises(DecodeError):
            decode_nodes(text)

    def test_decode_error_is_fetch_error(self):
        assert issubclass(DecodeError, FetchError)


class TestFileFetcher:
    """Tests for FileFetcher."""

    def test_reads_file(self, tmp_path):
        path = tmp_path / "nodes.json"
        path.write_text(json.dumps([K1]), encoding="utf-8")
        nodes = asyncio.run(FileFetcher(path).fetch())
        assert nodes == frozenset({NodePublic.parse(K1)})

    def test_rereads_on_every_fetch(self, tmp_path):
        path = tmp_path / "nodes.json"
        fetcher = FileFetcher(str(path))
        path.write_text(json.dumps([K1]), encoding="utf-8")
        first = asyncio.run(fetcher.fetch())
        path.write_text(json.dumps([K2]), encoding="utf-8")
        second = asyncio.run(fetcher.fetch())
        assert first != second
        assert NodePublic.parse(K2) in second

    def test_missing_file(self, tmp_path):
        """An absent file is a FetchError, not a DecodeError."""
        with pytest.raises(FetchError) as info:
            asyncio.run(FileFetcher(tmp_path / "absent.json").fetch())
        assert not isinstance(info.value, DecodeError)

    def test_bad_contents(self, tmp_path):
        path = tmp_path / "nodes.json"
        path.write_text("not json", encoding="utf-8")
        with pytest.raises(DecodeError):
            asyncio.run(FileFetcher(path).fetch())
