import argparse
import dataclasses
from dotenv import load_dotenv

load_dotenv(override=True)

from admit.config import load_config, parse_addr
from admit.core import run_server

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Node admission server")
    p.add_argument("--addr", help="listen address, host:port")
    p.add_argument("--path", help="/path/to/nodes.json")
    p.add_argument("--interval", type=float, help="refresh interval in seconds")
    return p.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    overrides = {}
    if args.addr:
        overrides["listen_host"], overrides["listen_port"] = parse_addr(args.addr)
    if args.path:
        overrides["nodes_path"] = args.path
    if args.interval is not None:
        overrides["refresh_interval"] = args.interval
    # replace() re-runs Config validation on the flag values
    config = dataclasses.replace(load_config(), **overrides)
    run_server(config)

if __name__ == "__main__":
    main()
