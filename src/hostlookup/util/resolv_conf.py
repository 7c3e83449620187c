from __future__ import annotations

import ipaddress
import logging
import typing

log = logging.getLogger(__name__)

RESOLV_CONF_PATH = "/etc/resolv.conf"

DEFAULT_NAMESERVERS = ("127.0.0.1:53", "[::1]:53")

# glibc's MAXNS.
MAX_NAMESERVERS = 3

# Understood by some libc but nothing we need to look at.
_IGNORED_KEYWORDS = frozenset(("domain", "search"))
_IGNORED_OPTIONS = frozenset(
    (
        "rotate",
        "single-request",
        "single-request-reopen",
        # Linux, FreeBSD and OpenBSD spellings of "use TCP".
        "use-vc",
        "usevc",
        "tcp",
        "trust-ad",
        "edns0",
        "no-reload",
    )
)


class ResolvConfig(typing.NamedTuple):
    """
    The parts of a resolv.conf(5) file that matter for routing lookups.

    Returned by :func:`read_resolv_conf` and :func:`parse_resolv_conf`.
    ``err`` is set instead of raising when the file couldn't be read, in
    which case every other field holds its default.

    ``servers``, ``ndots``, ``timeout`` and ``attempts`` aren't used for
    routing, they are kept for callers that go on to query DNS themselves.
    """

    servers: tuple[str, ...] = DEFAULT_NAMESERVERS
    ndots: int = 1
    timeout: float = 5.0
    attempts: int = 2
    # BSD "lookup" keyword; empty means the platform default order.
    lookup: tuple[str, ...] = ()
    unknown_opt: bool = False
    err: OSError | None = None

    @property
    def is_missing(self) -> bool:
        return isinstance(self.err, FileNotFoundError)


def _leading_int(value: str) -> int:
    digits = ""
    for char in value:
        if not char.isdigit():
            break
        digits += char
    return int(digits) if digits else 0


def _nameserver(addr: str) -> str | None:
    # Only literal addresses, anything else would need DNS to look up.
    try:
        ip = ipaddress.ip_address(addr)
    except ValueError:
        return None
    if ip.version == 6:
        return f"[{addr}]:53"
    return f"{addr}:53"


def parse_resolv_conf(text: str) -> ResolvConfig:
    servers: list[str] = []
    options: dict[str, typing.Any] = {}
    lookup: tuple[str, ...] = ()
    unknown_opt = False

    for line in text.splitlines():
        if line.startswith(("#", ";")):
            continue
        fields = line.split()
        if not fields:
            continue

        keyword, args = fields[0], fields[1:]
        if keyword == "nameserver":
            if args and len(servers) < MAX_NAMESERVERS:
                server = _nameserver(args[0])
                if server is not None:
                    servers.append(server)

        elif keyword == "options":
            for opt in args:
                if opt.startswith("ndots:"):
                    options["ndots"] = min(max(_leading_int(opt[6:]), 0), 15)
                elif opt.startswith("timeout:"):
                    options["timeout"] = float(max(_leading_int(opt[8:]), 1))
                elif opt.startswith("attempts:"):
                    options["attempts"] = max(_leading_int(opt[9:]), 1)
                elif opt not in _IGNORED_OPTIONS:
                    unknown_opt = True

        elif keyword == "lookup":
            # OpenBSD: "the legal space-separated values are: bind, file, yp"
            lookup = tuple(args)

        elif keyword not in _IGNORED_KEYWORDS:
            unknown_opt = True

    return ResolvConfig(
        servers=tuple(servers) or DEFAULT_NAMESERVERS,
        lookup=lookup,
        unknown_opt=unknown_opt,
        **options,
    )


def read_resolv_conf(path: str = RESOLV_CONF_PATH) -> ResolvConfig:
    """
    Read and parse the resolver configuration at ``path``.

    Never raises for I/O problems: the :class:`OSError` is returned on
    ``err`` so callers can tell a missing file from an unreadable one.
    """
    try:
        with open(path, encoding="utf-8", errors="surrogateescape") as f:
            text = f.read()
    except OSError as e:
        log.debug("Couldn't read %s: %r", path, e)
        return ResolvConfig(err=e)

    return parse_resolv_conf(text)
