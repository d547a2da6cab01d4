import argparse
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional

BOOLEAN_FLAGS = ("daemon", "dev", "version")


class UsageError(ValueError):
    """Raised instead of argparse printing its own usage and exiting."""


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


@dataclass(frozen=True)
class ParsedInvocation:
    command: Optional[str]
    args: tuple[str, ...] = ()
    flags: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))
    extra: tuple[str, ...] = ()

    @property
    def production(self) -> bool:
        return not self.flags.get("dev")


def _build_parser() -> _Parser:
    parser = _Parser(prog="droppy", add_help=False, allow_abbrev=False)
    parser.add_argument("-c", "--configdir")
    parser.add_argument("-f", "--filesdir")
    parser.add_argument("-l", "--log")
    parser.add_argument("-d", "--daemon", action="store_true")
    parser.add_argument("--dev", action="store_true")
    parser.add_argument("--color", dest="color", action="store_true", default=None)
    parser.add_argument("--no-color", dest="color", action="store_false", default=None)
    parser.add_argument("-v", "-V", "--version", dest="version", action="store_true")
    parser.add_argument("positional", nargs="*")
    return parser


def parse_invocation(argv: List[str]) -> ParsedInvocation:
    """
    Split raw CLI tokens into command, command arguments and flags.

    Raises UsageError for a value flag without a value or a boolean flag with one.
    """
    parser = _build_parser()
    ns, extra = parser.parse_known_intermixed_args(list(argv))
    flags = {k: v for k, v in vars(ns).items() if k != "positional"}
    for name in BOOLEAN_FLAGS:
        flags[name] = bool(flags.get(name))
    positional = list(ns.positional or [])
    return ParsedInvocation(
        command=positional[0] if positional else None,
        args=tuple(positional[1:]),
        flags=MappingProxyType(flags),
        extra=tuple(extra),
    )
