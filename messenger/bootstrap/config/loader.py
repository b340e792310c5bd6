import argparse
import os
from functools import lru_cache
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="messenger",
        description=(
            "Run a messenger endpoint.\n\n"
            "Connects to a peer over TCP, queues events while the peer is\n"
            "unreachable and flushes them in order once it is back."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to a messenger configuration file"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity.\n"
            "DEBUG    → connection transitions, queue sizes, heartbeats.\n"
            "INFO     → connections and disconnections (default).\n"
            "WARNING  → reconnect attempts and oversized frames.\n"
            "ERROR    → dropped messages and failing listeners.\n"
            "CRITICAL → only critical failures."
        ),
    )

    return parser


@lru_cache
def get_cli_args() -> argparse.Namespace:
    return build_parser().parse_args()


@lru_cache
def get_configfile() -> Path | None:
    """
    Resolve the configuration file.

    Priority: CLI > MESSENGERCONFIG > 'messenger.yaml' in the current working
    directory. An explicitly requested file must exist; the default one is
    optional, built-in defaults apply without it.
    """
    args = get_cli_args()
    raw = args.config or os.getenv("MESSENGERCONFIG")

    if raw is None:
        file = Path.cwd() / "messenger.yaml"
        return file if file.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the MESSENGERCONFIG environment variable\n"
            "  - Or place a 'messenger.yaml' file in the current working directory."
        )

    return file
