"""Command-line entry point for portman."""

import argparse
import logging
import sys

from portman.app import PortmanApp
from portman.config import VERSION, AppConfig, load_config
from portman.errors import PortmanError
from portman.export import render_markdown, render_plain
from portman.filters import PROTOCOL_SCOPES, ReadOptions
from portman.monitor import PortMonitor

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portman",
        description=(
            "Discover which processes are using which ports, "
            "in a live table or as a one-shot listing."
        ),
    )
    parser.add_argument("--port", type=int, default=0, help="Filter by specific port number")
    parser.add_argument(
        "--process",
        default="",
        help="Filter by process name (case-insensitive partial match)",
    )
    parser.add_argument("--listen", action="store_true", help="Show only listening ports")
    parser.add_argument(
        "--protocol",
        choices=sorted(PROTOCOL_SCOPES),
        default="all",
        help="Restrict to one protocol family",
    )
    parser.add_argument(
        "--no-borders",
        action="store_true",
        help="Hide table borders for cleaner output (with --print)",
    )
    parser.add_argument(
        "--print",
        dest="print_table",
        action="store_true",
        help="Print the table once and exit instead of starting the interface",
    )
    parser.add_argument("--interval", type=float, help="Seconds between socket polls")
    parser.add_argument("--config", help="Path to a JSON configuration file")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def setup_logging(config: AppConfig) -> None:
    """Log to a file; the terminal belongs to the interface."""
    logging.basicConfig(
        filename=config.log_file,
        level=getattr(logging, config.log_level.upper(), logging.WARNING),
        format=LOG_FORMAT,
    )


def resolve_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config)
    if args.interval is not None:
        config.poll_interval = args.interval
    if args.log_level:
        config.log_level = args.log_level
    return config


def print_table(monitor: PortMonitor, options: ReadOptions, hide_borders: bool) -> int:
    if not monitor.refresh():
        print(f"portman: {monitor.last_error}", file=sys.stderr)
        return 1
    processes = monitor.processes(options)
    output = render_plain(processes) if hide_borders else render_markdown(processes)
    sys.stdout.write(output)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the portman command."""
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
        setup_logging(config)
        options = ReadOptions(
            protocol=args.protocol,
            port=args.port,
            name=args.process,
            listen_only=args.listen,
        )
    except (PortmanError, ValueError) as exc:
        print(f"portman: {exc}", file=sys.stderr)
        return 1

    monitor = PortMonitor(
        poll_interval=config.poll_interval,
        kill_timeout=config.kill_timeout,
        reap_wait=config.reap_wait,
    )

    if args.print_table:
        return print_table(monitor, options, args.no_borders)

    logger.info("starting portman %s", VERSION)
    app = PortmanApp(monitor=monitor, config=config, options=options)
    try:
        app.run()
    finally:
        monitor.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
