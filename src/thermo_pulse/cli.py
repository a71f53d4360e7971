"""Command-line interface for thermo-pulse"""

import argparse
import asyncio
import logging
import socket
import sys
from typing import Optional

from thermo_pulse import __version__
from thermo_pulse.config import Config, ConfigError, load_config, parse_listen_address

logger = logging.getLogger("thermo_pulse")

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: str, log_file: Optional[str]) -> None:
    """
    Configure logging handlers.

    Safe to call again once the config file is loaded: the level is updated
    and a file handler is added if one is configured.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT, handlers=[logging.StreamHandler()])
    root.setLevel(log_level)

    # Add file handler if log file is specified and writable
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except PermissionError:
            print(
                f"Warning: Cannot write to {log_file}, logging to stderr only",
                file=sys.stderr,
            )
        else:
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thermo-pulse",
        description="Poll a thermostat (and optionally the weather) and export the readings",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        help="Path to config file (default: auto-detect)",
    )
    parser.add_argument(
        "--listen-address",
        type=str,
        help="The address to listen on for HTTP requests (default: 127.0.0.1:9092)",
    )
    parser.add_argument(
        "--client-secret",
        type=str,
        help="Thermostat API bearer token (required)",
    )
    parser.add_argument(
        "--thermostat-id",
        type=str,
        help="Thermostat device id (required)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Emit debug info, including outbound requests and responses",
    )
    parser.add_argument(
        "--owm-apikey",
        type=str,
        help="openweathermap API key; weather is not fetched without one",
    )
    parser.add_argument(
        "--owm-city-id",
        type=str,
        help="openweathermap.org city id (default: 2761369, Vienna AT)",
    )
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Command-line flags take precedence over config file values."""
    if args.listen_address is not None:
        config.web.listen_address = args.listen_address
    if args.client_secret is not None:
        config.thermostat.client_secret = args.client_secret
    if args.thermostat_id is not None:
        config.thermostat.thermostat_id = args.thermostat_id
    if args.owm_apikey is not None:
        config.weather.api_key = args.owm_apikey
    if args.owm_city_id is not None:
        config.weather.city_id = args.owm_city_id
    if args.debug:
        config.logging.debug = True
    return config


def bind_socket(listen_address: str) -> socket.socket:
    """
    Bind the listening socket up front so a bind failure is reported
    before any poller starts.

    Raises:
        OSError: If the address cannot be bound
    """
    host, port = parse_listen_address(listen_address)
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


async def serve(config: Config, sock: socket.socket) -> None:
    """Start pollers and serve HTTP until uvicorn receives a shutdown signal."""
    import uvicorn

    from thermo_pulse.context import AppContext
    from thermo_pulse.web.app import create_app

    context = AppContext.from_config(config)
    await context.start()

    try:
        app = create_app(context=context)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                log_level="debug" if config.logging.debug else "info",
                log_config=None,  # Prevent uvicorn from reconfiguring logging
            )
        )
        await server.serve(sockets=[sock])
    finally:
        logger.info("Shutting down...")
        await context.shutdown()


async def async_main(argv: Optional[list[str]] = None) -> int:
    """Async main entry point"""
    args = build_parser().parse_args(argv)

    # Early setup so config loading is logged; refined below from the config
    setup_logging("DEBUG" if args.debug else "INFO", None)

    try:
        config = apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        logger.critical(f"{e}")
        return 1

    log_level = "DEBUG" if config.logging.debug else config.logging.level
    setup_logging(log_level, config.logging.file or None)

    try:
        config.validate()
    except ConfigError as e:
        logger.critical(f"{e}")
        return 1

    logger.info(f"starting, will listen on {config.web.listen_address}")

    try:
        sock = bind_socket(config.web.listen_address)
    except OSError as e:
        logger.critical(f"cannot listen on {config.web.listen_address}: {e}")
        return 1

    try:
        await serve(config, sock)
    finally:
        sock.close()
    return 0


def main() -> int:
    """Main entry point - wraps async_main()"""
    return asyncio.run(async_main())


if __name__ == "__main__":
    sys.exit(main())
