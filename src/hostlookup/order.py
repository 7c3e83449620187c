from __future__ import annotations

import enum
import logging
import socket
import string

from .config import SystemConfig
from .exceptions import HostLookupError, HostnameLookupError
from .util.nss import SourceKind, get_system_nss
from .util.platform import OSFamily
from .util.resolver import Resolver, prefers_builtin

log = logging.getLogger(__name__)


class LookupOrder(str, enum.Enum):
    """Which resolver(s) to consult for a hostname, and in what order."""

    # Hand the lookup to the C library (getaddrinfo and NSS).
    NATIVE_ONLY = "native"
    # Built-in resolver, DNS only.
    BUILTIN_DNS = "dns"
    # Built-in resolver, /etc/hosts first then DNS.
    FILES_THEN_DNS = "files,dns"
    DNS_THEN_FILES = "dns,files"
    FILES_ONLY = "files"

    def __str__(self) -> str:
        return self.value


# OpenBSD resolv.conf "lookup" keyword, see resolv.conf(5).
_OPENBSD_LOOKUP_ORDERS = {
    ("bind",): LookupOrder.BUILTIN_DNS,
    ("bind", "file"): LookupOrder.DNS_THEN_FILES,
    ("file",): LookupOrder.FILES_ONLY,
    ("file", "bind"): LookupOrder.FILES_THEN_DNS,
}


# Hostname comparisons fold ASCII letters only.
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def _lower_ascii(value: str) -> str:
    return value.translate(_ASCII_LOWER)


def machine_hostname() -> str:
    """The machine's own hostname, as used by the ``myhostname`` NSS module."""
    try:
        hostname = socket.gethostname()
    except OSError as e:
        raise HostnameLookupError("Failed to get the machine's hostname", e) from e
    if not hostname:
        raise HostnameLookupError("The machine's hostname is empty")
    return hostname


def is_localhost(hostname: str) -> bool:
    """Whether ``myhostname`` answers for ``hostname`` as a localhost name."""
    hostname = _lower_ascii(hostname)
    return hostname in ("localhost", "localhost.localdomain") or hostname.endswith(
        (".localhost", ".localhost.localdomain")
    )


def is_gateway(hostname: str) -> bool:
    return _lower_ascii(hostname) == "_gateway"


def is_outbound(hostname: str) -> bool:
    return _lower_ascii(hostname) == "_outbound"


def host_lookup_order(
    config: SystemConfig, hostname: str, resolver: Resolver | None = None
) -> LookupOrder:
    """
    Decide how ``hostname`` should be resolved on a machine configured like
    ``config``.

    :param resolver:
        Optional per-call options. ``None`` means not to consider any.

    Never raises: whenever the configuration is something we can't
    faithfully emulate, the answer is the native resolver (or the built-in
    resolver's default order if that was asked for).
    """
    order = _host_lookup_order(config, hostname, resolver)
    if config.debug_level > 1:
        log.debug("host_lookup_order(%r) = %s", hostname, order)
    return order


def _host_lookup_order(
    config: SystemConfig, hostname: str, resolver: Resolver | None
) -> LookupOrder:
    family = config.os_family

    fallback = LookupOrder.NATIVE_ONLY
    if config.net_builtin or prefers_builtin(resolver):
        if family is OSFamily.windows:
            # No files-based lookup on Windows.
            fallback = LookupOrder.BUILTIN_DNS
        else:
            fallback = LookupOrder.FILES_THEN_DNS

    if not family.has_native_resolver:
        return fallback
    if (
        config.force_native_lookup
        or config.resolv.unknown_opt
        or family is OSFamily.android
    ):
        return fallback
    # Backslash escapes and IPv6 zones.
    if "\\" in hostname or "%" in hostname:
        return fallback

    # OpenBSD doesn't use nsswitch.conf, nor does it support mDNS.
    if family is OSFamily.openbsd:
        resolv = config.resolv
        if resolv.is_missing:
            # No resolv.conf means "lookup file", without DNS.
            return LookupOrder.FILES_ONLY
        if not resolv.lookup:
            # "If the lookup keyword is not used [...] the assumed order
            # is 'bind file'"
            return LookupOrder.DNS_THEN_FILES
        return _OPENBSD_LOOKUP_ORDERS.get(tuple(resolv.lookup), fallback)

    if hostname.endswith("."):
        hostname = hostname[:-1]
    if _lower_ascii(hostname).endswith(".local"):
        # RFC 6762 reserves .local for mDNS, which only libc (via Avahi,
        # nss-mdns and such) may know how to do.
        return fallback

    nss = get_system_nss()
    sources = nss.database("hosts")
    if isinstance(nss.err, FileNotFoundError) or (nss.err is None and not sources):
        if family is OSFamily.solaris:
            # illumos defaults to "nis [NOTFOUND=return] files".
            return fallback
        return LookupOrder.FILES_THEN_DNS
    if nss.err is not None:
        return fallback

    has_files = has_dns = has_mdns = False
    first: SourceKind | None = None
    for source in sources:
        if source.kind is SourceKind.myhostname:
            if is_localhost(hostname) or is_gateway(hostname) or is_outbound(hostname):
                return fallback
            try:
                own_hostname = machine_hostname()
            except HostLookupError:
                return fallback
            if _lower_ascii(hostname) == _lower_ascii(own_hostname):
                return fallback
            continue

        if source.kind in (SourceKind.files, SourceKind.dns):
            if not source.standard_criteria:
                return fallback
            if source.kind is SourceKind.files:
                has_files = True
            else:
                has_dns = True
            if first is None:
                first = source.kind
            continue

        if source.kind is SourceKind.mdns:
            # .local names were handled above, and libc wouldn't find
            # anything else through it.
            has_mdns = True
            continue

        # Some source we don't know how to deal with.
        return fallback

    # mdns.allow may list more domains than .local, or even "*".
    if has_mdns and config.has_mdns_allow:
        return fallback

    if has_files and has_dns:
        if first is SourceKind.files:
            return LookupOrder.FILES_THEN_DNS
        return LookupOrder.DNS_THEN_FILES
    if has_files:
        return LookupOrder.FILES_ONLY
    if has_dns:
        return LookupOrder.BUILTIN_DNS

    return fallback


def can_use_native(config: SystemConfig) -> bool:
    """Whether lookups other than hostnames may go to the native resolver."""
    return host_lookup_order(config, "") is LookupOrder.NATIVE_ONLY
