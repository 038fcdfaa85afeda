from dataclasses import dataclass
import os
from dotenv import load_dotenv

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3000

@dataclass
class Config:
    listen_host: str
    listen_port: int
    nodes_path: str
    refresh_interval: float
    log_path: str

    def __post_init__(self):
        if not 0 <= self.listen_port <= 65535:
            raise ValueError(f"listen port out of range: {self.listen_port}")
        if self.refresh_interval <= 0:
            raise ValueError("refresh interval must be positive")

def load_config():
    load_dotenv(override=True)
    return Config(
        listen_host=os.getenv("ADMIT_LISTEN_HOST", DEFAULT_HOST),
        listen_port=int(os.getenv("ADMIT_LISTEN_PORT", DEFAULT_PORT)),
        nodes_path=os.getenv("ADMIT_NODES_PATH", "nodes.json"),
        refresh_interval=float(os.getenv("ADMIT_REFRESH_INTERVAL", 60)),
        log_path=os.getenv("ADMIT_LOG_PATH", "admit.log"),
    )

def parse_addr(addr: str):
    """Split ``host:port`` (``[::1]:3000`` for IPv6)."""
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"address needs a port: {addr!r}")
    host = host.strip("[]") or DEFAULT_HOST
    return host, int(port)
