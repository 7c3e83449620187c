from __future__ import annotations

import enum
import sys


class OSFamily(str, enum.Enum):
    """Operating system families that change how host lookups are routed."""

    linux = "linux"
    android = "android"
    darwin = "darwin"
    ios = "ios"
    windows = "windows"
    plan9 = "plan9"
    openbsd = "openbsd"
    freebsd = "freebsd"
    netbsd = "netbsd"
    dragonfly = "dragonfly"
    # illumos reports itself as SunOS too.
    solaris = "solaris"
    aix = "aix"

    @property
    def has_native_resolver(self) -> bool:
        """Whether "native" means a libc resolver driven by resolv.conf/NSS.

        On Windows and Plan 9 the native path is the OS API and there is
        nothing on disk for us to interpret.
        """
        return self not in (OSFamily.windows, OSFamily.plan9)

    @property
    def is_apple(self) -> bool:
        return self in (OSFamily.darwin, OSFamily.ios)


# Prefixes of ``sys.platform``, most specific first.
_PLATFORM_PREFIXES = (
    ("linux", OSFamily.linux),
    ("android", OSFamily.android),
    ("darwin", OSFamily.darwin),
    ("ios", OSFamily.ios),
    ("win32", OSFamily.windows),
    ("cygwin", OSFamily.windows),
    ("plan9", OSFamily.plan9),
    ("openbsd", OSFamily.openbsd),
    ("freebsd", OSFamily.freebsd),
    ("netbsd", OSFamily.netbsd),
    ("dragonfly", OSFamily.dragonfly),
    ("sunos", OSFamily.solaris),
    ("aix", OSFamily.aix),
)


def detect_os_family(platform: str | None = None) -> OSFamily:
    """
    Map ``sys.platform`` (or the given string) to an :class:`OSFamily`.

    Unknown platforms are treated like Linux: a libc resolver configured
    through resolv.conf and nsswitch.conf.
    """
    if platform is None:
        platform = sys.platform
        # CPython before 3.13 reports "linux" on Android.
        if platform == "linux" and hasattr(sys, "getandroidapilevel"):
            return OSFamily.android

    platform = platform.lower()
    for prefix, family in _PLATFORM_PREFIXES:
        if platform.startswith(prefix):
            return family
    return OSFamily.linux
