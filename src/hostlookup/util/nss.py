"""
Parsing and caching of the Name Service Switch configuration.

Only the shape of each database line is interpreted: the ordered source
names and whether their ``[STATUS=action]`` criteria differ from glibc's
defaults. Everything else is left for the native resolver to deal with.
"""

from __future__ import annotations

import enum
import logging
import os
import threading
import time
import typing

from ..exceptions import NSSConfigParseError

log = logging.getLogger(__name__)

NSSWITCH_CONF_PATH = "/etc/nsswitch.conf"

# How long a parsed nsswitch.conf is trusted before its mtime is checked
# again, in seconds.
NSS_CONFIG_TTL = 5.0


class SourceKind(enum.Enum):
    """How the lookup-order engine treats a source in the ``hosts`` database."""

    files = "files"
    dns = "dns"
    myhostname = "myhostname"
    # mdns, mdns4, mdns4_minimal, mdns6, ...
    mdns = "mdns"
    other = "other"

    @classmethod
    def for_name(cls, name: str) -> SourceKind:
        if name == "files":
            return cls.files
        if name == "dns":
            return cls.dns
        if name == "myhostname":
            return cls.myhostname
        if name.startswith("mdns"):
            return cls.mdns
        return cls.other


# What glibc does for each status when a source has no criteria block. The
# files and dns services share glibc's defaults but are listed separately
# so that neither is assumed from the other.
_GLIBC_DEFAULT_ACTIONS = {
    "success": "return",
    "notfound": "continue",
    "unavail": "continue",
    "tryagain": "continue",
}

DEFAULT_CRITERIA: dict[SourceKind, dict[str, str]] = {
    SourceKind.files: dict(_GLIBC_DEFAULT_ACTIONS),
    SourceKind.dns: dict(_GLIBC_DEFAULT_ACTIONS),
}


class NSSCriterion(typing.NamedTuple):
    """A single ``STATUS=action`` entry, lowercased."""

    negate: bool
    status: str
    action: str

    def is_standard(self, kind: SourceKind, last: bool) -> bool:
        """
        Whether this criterion behaves as if it wasn't specified at all.

        A ``return`` on the last criterion of a block is harmless: it just
        ends the lookup where falling through would have ended it anyway.
        """
        if self.negate:
            return False
        defaults = DEFAULT_CRITERIA.get(kind, _GLIBC_DEFAULT_ACTIONS)
        default_action = defaults.get(self.status)
        if default_action is None:
            # Unknown status.
            return False
        if last and self.action == "return":
            return True
        return self.action == default_action


class NSSSource(typing.NamedTuple):
    name: str
    kind: SourceKind
    criteria: tuple[NSSCriterion, ...] = ()

    @property
    def standard_criteria(self) -> bool:
        """True when every criterion matches the default for this source."""
        last = len(self.criteria) - 1
        return all(
            criterion.is_standard(self.kind, i == last)
            for i, criterion in enumerate(self.criteria)
        )


def make_source(name: str, criteria: typing.Iterable[NSSCriterion] = ()) -> NSSSource:
    return NSSSource(name, SourceKind.for_name(name), tuple(criteria))


class NSSConfig(typing.NamedTuple):
    """
    A parsed nsswitch.conf.

    ``sources`` maps a database name to its sources in file order. ``err``
    carries the :class:`OSError` from opening the file (``FileNotFoundError``
    when it doesn't exist) or a :class:`~hostlookup.exceptions.NSSConfigParseError`.
    """

    sources: typing.Mapping[str, tuple[NSSSource, ...]] = {}
    err: Exception | None = None
    mtime: float | None = None

    def database(self, name: str) -> tuple[NSSSource, ...]:
        return self.sources.get(name, ())


def _parse_criteria(block: str) -> list[NSSCriterion]:
    # "success=return !notfound=continue"
    criteria = []
    for field in block.split():
        negate = field.startswith("!")
        if negate:
            field = field[1:]
        if len(field) < 3:
            raise ValueError("criterion too short")
        status, eq, action = field.lower().partition("=")
        if not eq:
            raise ValueError("criterion lacks equal sign")
        criteria.append(NSSCriterion(negate, status, action))
    return criteria


def parse_nss_conf(text: str, path: str | None = None) -> NSSConfig:
    """
    Parse the contents of an nsswitch.conf(5) file.

    Malformed input doesn't raise, it's reported on ``NSSConfig.err``
    together with whatever was parsed up to that point.
    """
    sources: dict[str, list[NSSSource]] = {}

    def _result(err: Exception | None = None) -> NSSConfig:
        return NSSConfig(
            sources={db: tuple(srcs) for db, srcs in sources.items()}, err=err
        )

    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        db, colon, rest = line.partition(":")
        if not colon:
            return _result(NSSConfigParseError(path, "no colon on line"))
        db = db.strip()

        rest = rest.strip()
        while rest:
            name, *tail = rest.split(None, 1)
            rest = tail[0] if tail else ""

            criteria: list[NSSCriterion] = []
            if rest.startswith("["):
                close = rest.find("]")
                if close == -1:
                    return _result(
                        NSSConfigParseError(path, "unclosed criterion bracket")
                    )
                block = rest[1:close]
                try:
                    criteria = _parse_criteria(block)
                except ValueError:
                    return _result(
                        NSSConfigParseError(path, f"invalid criteria: {block}")
                    )
                rest = rest[close + 1 :].strip()

            sources.setdefault(db, []).append(make_source(name, criteria))

    return _result()


def read_nss_conf(path: str = NSSWITCH_CONF_PATH) -> NSSConfig:
    try:
        with open(path, encoding="utf-8", errors="surrogateescape") as f:
            mtime = os.fstat(f.fileno()).st_mtime
            text = f.read()
    except OSError as e:
        log.debug("Couldn't read %s: %r", path, e)
        return NSSConfig(err=e)

    return parse_nss_conf(text, path)._replace(mtime=mtime)


def _stat_mtime(path: str) -> float | None:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


class NSSConfigCache:
    """
    Thread-safe holder of the most recently parsed nsswitch.conf.

    :param path:
        File to (re)parse.

    :param ttl:
        Seconds a parsed value is served before the file is checked again.

    :param clock:
        Monotonic time source, overridable for tests.

    Readers only take ``lock``, which guards the value and the time it was
    last checked. A reader that finds the value stale queues on
    ``reload_gate`` so that at most one reparse runs per expiry; once through
    the gate it re-checks, because whoever went first may already have
    refreshed it.
    """

    def __init__(
        self,
        path: str = NSSWITCH_CONF_PATH,
        ttl: float = NSS_CONFIG_TTL,
        clock: typing.Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = path
        self.ttl = ttl
        self.clock = clock

        self.lock = threading.Lock()
        self.reload_gate = threading.BoundedSemaphore(1)
        self._conf: NSSConfig | None = None
        self._last_checked: float | None = None

    def _is_fresh(self, now: float) -> bool:
        return self._last_checked is not None and now - self._last_checked < self.ttl

    def get(self) -> NSSConfig:
        with self.lock:
            conf = self._conf
            if conf is not None and self._is_fresh(self.clock()):
                return conf

        with self.reload_gate:
            with self.lock:
                conf = self._conf
                now = self.clock()
                if conf is not None and self._is_fresh(now):
                    return conf
                self._last_checked = now

            if conf is not None and conf.mtime is not None:
                if _stat_mtime(self.path) == conf.mtime:
                    return conf

            log.debug("Reloading %s", self.path)
            conf = read_nss_conf(self.path)
            with self.lock:
                self._conf = conf
            return conf

    def set(self, conf: NSSConfig, offset: float = 0.0) -> None:
        """
        Replace the cached value, marking it checked ``offset`` seconds from
        now. A positive offset keeps it fresh for longer than the TTL, a
        negative one makes the next :meth:`get` reload it.
        """
        with self.reload_gate:
            with self.lock:
                self._conf = conf
                self._last_checked = self.clock() + offset


_system_nss = NSSConfigCache()


def get_system_nss() -> NSSConfig:
    """The machine's nsswitch.conf, reparsed at most every ``NSS_CONFIG_TTL``."""
    return _system_nss.get()


def set_system_nss(conf: NSSConfig, offset: float = 0.0) -> None:
    _system_nss.set(conf, offset)
