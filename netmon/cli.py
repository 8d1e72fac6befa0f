import sys
import logging
import argparse

from netmon.config import Config, DEFAULT_INTERVAL, parse_sort_field, sort_field_names
from netmon.dns import DnsResolver
from netmon.errors import ResolverStartupError
from netmon.state import MonitorState

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netmon",
        description=(
            "Network Monitor TUI. Shows which connections every process has open "
            "and how much traffic each one generates, refreshed on a timer. "
            "Data comes from nettop (macOS)."
        ),
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=int,
        default=DEFAULT_INTERVAL,
        help="Refresh interval in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "-s",
        "--sort-by",
        default="rate-in",
        help=f"Initial sort field: {', '.join(sort_field_names())} (default: %(default)s)",
    )
    parser.add_argument("--mock", action="store_true", help="Use generated data instead of nettop")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    return Config(
        interval=args.interval,
        sort_field=parse_sort_field(args.sort_by),
        mock=args.mock,
    )


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    from netmon.tui import NetworkMonitor, configure_logging

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    if config.mock:
        from netmon.provider.mock import MockProvider

        provider = MockProvider()
    else:
        from netmon.provider.nettop import NettopProvider

        provider = NettopProvider(config.nettop_command)

    resolver = DnsResolver(max_pending=config.dns_queue_size, timeout=config.dns_timeout)
    try:
        resolver.start()
    except ResolverStartupError as e:
        LOGGER.error("%s. Exiting.", e)
        sys.exit(1)

    state = MonitorState(
        resolver,
        sort_field=config.sort_field,
        interval_secs=config.interval,
        history_len=config.history_len,
        enrich_paths=not config.mock,
    )
    app = NetworkMonitor(provider, state)
    app.run()


if __name__ == "__main__":
    main()
