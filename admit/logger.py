"""
admit.logger
~~~~~~~~~~~~
Human-readable console lines *and* JSON logs with daily rotation.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

_ISO = "%Y-%m-%dT%H:%M:%SZ"

def _now() -> str:  # RFC-3339 without microseconds
    return datetime.now(tz=timezone.utc).strftime(_ISO)


class _PlainFormatter(logging.Formatter):
    """ e.g. 2025-06-19T15:07:02Z allowed nodekey:8d1e4a... 100.64.0.7 """

    def format(self, record):  # type: ignore[override]
        if not isinstance(record.msg, dict):
            return super().format(record)
        d: Dict[str, Any] = record.msg

        parts = [d.get("ts", _now()), d.get("event", "-")]
        if d["event"] == "allowed":
            parts.extend([d.get("node", "-"), d.get("source", "-")])
        elif d["event"] == "updated":
            parts.append(f'{d.get("nodes", 0):,} nodes')
        elif d["event"] == "fetch_failed":
            parts.append(d.get("error", ""))
        elif d["event"] == "bad_request":
            parts.extend([str(d.get("status", "-")), d.get("reason", "")])
        elif d["event"] == "serving":
            parts.append(d.get("addr", "-"))
        elif d["event"] == "internal_error":
            parts.extend([d.get("ip", "-"), f'{d.get("error_type", "")}: {d.get("error", "")}'])
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _JSONFormatter(logging.Formatter):
    def format(self, record):  # type: ignore[override]
        msg = record.msg
        if record.exc_info and isinstance(msg, dict):
            msg = {**msg, "traceback": self.formatException(record.exc_info)}
        return json.dumps(msg, separators=(",", ":"))


class AdmitLogger:
    def __init__(self, basename: str | Path, console: bool = True):
        root = logging.getLogger("admit")
        root.setLevel(logging.INFO)
        root.propagate = False  # don't spam the root logger
        for old in list(root.handlers):
            root.removeHandler(old)
            old.close()

        basename = Path(basename).with_suffix("")  # admit
        jsonl_file = basename.with_suffix(".jsonl")

        # json lines
        h = logging.handlers.TimedRotatingFileHandler(
            jsonl_file, when="midnight", backupCount=7, encoding="utf-8"
        )
        h.setFormatter(_JSONFormatter())
        root.addHandler(h)

        if console:
            c = logging.StreamHandler(sys.stderr)
            c.setFormatter(_PlainFormatter())
            root.addHandler(c)

        self.log = root
        self.path = jsonl_file

    def close(self) -> None:
        for h in list(self.log.handlers):
            self.log.removeHandler(h)
            h.close()

    def serving(self, addr: str):
        self.log.info({"event": "serving", "ts": _now(), "addr": addr})

    def fetching(self):
        self.log.info({"event": "fetching", "ts": _now()})

    def updated(self, count: int):
        self.log.info({"event": "updated", "ts": _now(), "nodes": count})

    def fetch_failed(self, error: BaseException):
        self.log.error(
            {
                "event": "fetch_failed",
                "ts": _now(),
                "error": str(error) or type(error).__name__,
            }
        )

    def allowed(self, node: str, source: str | None):
        self.log.info(
            {
                "event": "allowed",
                "ts": _now(),
                "node": node,
                "source": source or "-",
            }
        )

    def bad_request(self, ip: str, status: int, reason: str):
        self.log.warning(
            {
                "event": "bad_request",
                "ts": _now(),
                "ip": ip,
                "status": status,
                "reason": reason,
            }
        )

    def internal_error(self, ip: str, error: BaseException):
        self.log.error(
            {
                "event": "internal_error",
                "ts": _now(),
                "ip": ip,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=error,
        )
