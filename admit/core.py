"""
admit.core
~~~~~~~~~~
Non-blocking HTTP admission endpoint: POST a node key, get back Allow.

    POST / {"NodePublic": "nodekey:...", "Source": "100.64.0.7"}
    200    {"Allow": true}
"""

from __future__ import annotations

import asyncio
import json
from typing import Dict, Optional, Tuple

from .cache import AdmissionCache
from .config import Config
from .fetcher import FileFetcher
from .keys import KeyFormatError, NodePublic
from .logger import AdmitLogger

CRLF = b"\r\n"
MAX_BODY = 1 << 13
MAX_HEAD = 1 << 14


def run_server(config: Config) -> None:
    server = AdmitServer(config)
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        print("\n▸ Admission server shut down.")
    finally:
        server.logger.close()


class AdmitServer:
    def __init__(
        self,
        cfg: Config,
        cache: Optional[AdmissionCache] = None,
        logger: Optional[AdmitLogger] = None,
    ) -> None:
        self.cfg = cfg
        self.logger = logger or AdmitLogger(cfg.log_path)
        self.cache = cache or AdmissionCache(
            FileFetcher(cfg.nodes_path),
            interval=cfg.refresh_interval,
            logger=self.logger,
        )

    async def start(self) -> asyncio.AbstractServer:
        return await asyncio.start_server(
            self._handle_client,
            host=self.cfg.listen_host,
            port=self.cfg.listen_port,
        )

    async def serve_forever(self) -> None:
        server = await self.start()

        bind_str = ", ".join(str(s.getsockname()) for s in server.sockets)
        self.logger.serving(bind_str)
        print(f"▸ Admission server listening on {bind_str}  (nodes={self.cfg.nodes_path})")

        async with server:
            await server.serve_forever()

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        peer = writer.get_extra_info("peername")
        peer_ip = peer[0] if peer else "-"

        try:
            req_line, headers = await _read_request_head(reader)
            method, _target = _parse_request_line(req_line)
            if method.upper() != "POST":
                raise HTTPError(405, "Method Not Allowed")

            body = await _read_body(reader, headers)
            node, source = _decode_admit_request(body)

            allow = await self.cache.is_admitted(node)
            if allow:
                self.logger.allowed(str(node), source)

            payload = json.dumps({"Allow": allow}).encode()
            await _send_simple_response(writer, 200, payload, json_body=True)

        except HTTPError as e:
            self.logger.bad_request(peer_ip, e.status, e.msg)
            try:
                await _send_simple_response(writer, e.status, e.msg.encode())
            except ConnectionError:
                pass
        except ConnectionError:
            pass
        except Exception as e:  # noqa: BLE001
            self.logger.internal_error(peer_ip, e)
            try:
                await _send_simple_response(writer, 500, b"Internal Server Error")
            except ConnectionError:
                pass
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass


class HTTPError(Exception):
    def __init__(self, status: int, msg: str):
        self.status = status
        self.msg = msg
        super().__init__(f"{status} {msg}")


async def _read_request_head(reader: asyncio.StreamReader) -> Tuple[bytes, Dict[str, str]]:
    head = b""
    while True:
        line = await reader.readline()
        if not line:
            raise HTTPError(400, "Bad Request: EOF before headers complete")
        head += line
        if len(head) > MAX_HEAD:
            raise HTTPError(400, "Bad Request: head too large")
        if line == CRLF:
            break

    lines = head.split(CRLF)[:-1]
    if not lines or not lines[0]:
        raise HTTPError(400, "Bad Request: empty head")

    req_line = lines[0]
    hdrs = {}
    for raw in lines[1:]:
        if b":" in raw:
            k, v = raw.split(b":", 1)
            hdrs[k.decode("latin-1").strip().lower()] = v.decode("latin-1").strip()
    return req_line, hdrs


def _parse_request_line(line: bytes) -> Tuple[str, str]:
    try:
        method, target, _version = line.decode("latin-1").strip().split()
    except ValueError:
        raise HTTPError(400, "Bad Request: malformed request-line") from None
    return method, target


async def _read_body(reader: asyncio.StreamReader, headers: Dict[str, str]) -> bytes:
    try:
        length = int(headers.get("content-length", "0"))
    except ValueError:
        raise HTTPError(400, "Bad Request: bad Content-Length") from None
    if length < 0 or length > MAX_BODY:
        raise HTTPError(400, "Bad Request: body too large")
    try:
        return await reader.readexactly(length)
    except asyncio.IncompleteReadError:
        raise HTTPError(400, "Bad Request: truncated body") from None


def _decode_admit_request(body: bytes) -> Tuple[NodePublic, Optional[str]]:
    try:
        req = json.loads(body)
    except ValueError:
        raise HTTPError(400, "Bad Request: invalid JSON") from None
    if not isinstance(req, dict):
        raise HTTPError(400, "Bad Request: expected JSON object")

    try:
        node = NodePublic.parse(req.get("NodePublic"))
    except KeyFormatError as e:
        raise HTTPError(400, f"Bad Request: NodePublic: {e}") from None

    source = req.get("Source")
    return node, source if isinstance(source, str) else None


async def _send_simple_response(
    writer: asyncio.StreamWriter,
    status: int,
    body: bytes = b"",
    json_body: bool = False,
) -> None:
    reason = {200: "OK", 400: "Bad Request", 405: "Method Not Allowed",
              500: "Internal Server Error"}.get(status, "Error")
    head = f"HTTP/1.1 {status} {reason}\r\n"
    if status == 405:
        head += "Allow: POST\r\n"
    if json_body:
        head += "Content-Type: application/json\r\n"
    head += f"Content-Length: {len(body)}\r\nConnection: close\r\n\r\n"
    writer.write(head.encode() + body)
    await writer.drain()
