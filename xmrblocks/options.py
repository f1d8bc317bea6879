"""Command line options of the explorer."""

from __future__ import annotations

import argparse
import sys
from typing import Any, Sequence

DESCRIPTION = "xmrblocks, Onion Monero Blockchain Explorer"

_TRUE_WORDS = {"true", "1", "yes", "on"}
_FALSE_WORDS = {"false", "0", "no", "off"}

_FLAGS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("--help", "-h"), "produce help message"),
    (("--testnet", "-t"), "use testnet blockchain"),
    (("--stagenet", "-s"), "use stagenet blockchain"),
    (("--enable-pusher",), "enable signed transaction pusher"),
    (("--enable-mixin-details",),
     "enable mixin details for key images, e.g., timescale, mixin of mixins, in tx context"),
    (("--enable-key-image-checker",), "enable key images file checker"),
    (("--enable-output-key-checker",), "enable outputs key file checker"),
    (("--enable-json-api",), "enable JSON REST api"),
    (("--enable-tx-cache",), "enable caching of transaction details"),
    (("--show-cache-times",), "show times of getting data from cache vs no cache"),
    (("--enable-block-cache",), "enable caching of block details"),
    (("--enable-js",),
     "enable checking outputs and proving txs using JavaScript on client side"),
    (("--enable-as-hex",), "enable links to provide hex represtations of a tx and a block"),
    (("--enable-autorefresh-option",), "enable users to have the index page on autorefresh"),
    (("--enable-emission-monitor",), "enable Monero total emission monitoring thread"),
)

_STRINGS: tuple[tuple[tuple[str, ...], str | None, str], ...] = (
    (("--port", "-p"), "8081", "default explorer port"),
    (("--bindaddr", "-x"), "0.0.0.0", "default bind address for the explorer"),
    (("--testnet-url",), "",
     "you can specify testnet url, if you run it on mainnet or stagenet. "
     "link will show on front page to testnet explorer"),
    (("--stagenet-url",), "",
     "you can specify stagenet url, if you run it on mainnet or testnet. "
     "link will show on front page to stagenet explorer"),
    (("--mainnet-url",), "",
     "you can specify mainnet url, if you run it on testnet or stagenet. "
     "link will show on front page to mainnet explorer"),
    (("--no-blocks-on-index",), "10", "number of last blocks to be shown on index page"),
    (("--mempool-info-timeout",), "5000",
     "maximum time, in milliseconds, to wait for mempool data for the front page"),
    (("--mempool-refresh-time",), "5", "time, in seconds, for each refresh of mempool state"),
    (("--bc-path", "-b"), None,
     "path to lmdb folder of the blockchain, e.g., ~/.bitmonero/lmdb"),
    (("--ssl-crt-file",), None, "path to crt file for ssl (https) functionality"),
    (("--ssl-key-file",), None, "path to key file for ssl (https) functionality"),
    (("--deamon-url", "-d"), "http:://127.0.0.1:18081", "Monero deamon url"),
)


class _Parser(argparse.ArgumentParser):
    """Argument parser that raises instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ValueError(message)


def _parse_bool(text: str) -> bool:
    word = text.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"invalid boolean value: {text!r}")


def _non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        raise ValueError(f"expected a non-negative number, got {text!r}")
    return value


def _dest(flags: Sequence[str]) -> str:
    return flags[0][2:]


def build_parser() -> argparse.ArgumentParser:
    """Build the parser holding every option of the explorer."""
    parser = _Parser(
        prog="xmrblocks",
        description=DESCRIPTION,
        add_help=False,
        allow_abbrev=False,
    )
    for flags, help_text in _FLAGS:
        parser.add_argument(
            *flags,
            dest=_dest(flags),
            type=_parse_bool,
            nargs="?",
            const=True,
            default=False,
            metavar="BOOL",
            help=help_text,
        )
    for flags, default, help_text in _STRINGS:
        parser.add_argument(*flags, dest=_dest(flags), default=default, help=help_text)
    parser.add_argument(
        "--concurrency",
        "-c",
        dest="concurrency",
        type=_non_negative_int,
        default=0,
        help="number of threads handling http queries. "
        "Default is 0 which means it is based you on the cpu",
    )
    return parser


class CmdLineOptions:
    """Parsed command line options, looked up by their long names."""

    def __init__(self, argv: Sequence[str] | None = None) -> None:
        parser = build_parser()
        args = list(sys.argv[1:] if argv is None else argv)
        namespace = parser.parse_args(args)
        self._values: dict[str, Any] = {
            name: value for name, value in vars(namespace).items() if value is not None
        }
        self.help_text = parser.format_help()
        if self._values.get("help"):
            print(self.help_text)

    def get_option(self, name: str) -> Any:
        """Return the value of an option, or None if it was neither given nor defaulted."""
        return self._values.get(name)