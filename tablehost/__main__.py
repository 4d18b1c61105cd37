import argparse
import asyncio
import logging

from .server import TableHost


def main() -> None:
    parser = argparse.ArgumentParser(description="DealMe table host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000, help="HTTP polling port")
    parser.add_argument(
        "--control-port",
        type=int,
        default=8765,
        help="Operator websocket port (0 disables the control channel)",
    )
    parser.add_argument("--tables", type=int, default=1, help="Tables to open at startup")
    parser.add_argument("--max-players", type=int, default=8)
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper())

    host = TableHost()
    host.open_tables(args.tables, args.max_players)
    asyncio.run(host.start(host=args.host, port=args.port, control_port=args.control_port, log_level=args.log_level))


if __name__ == "__main__":
    main()
