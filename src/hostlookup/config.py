from __future__ import annotations

import logging
import os
import threading
import typing

from .util.platform import OSFamily, detect_os_family
from .util.resolv_conf import RESOLV_CONF_PATH, ResolvConfig, read_resolv_conf

log = logging.getLogger(__name__)

MDNS_ALLOW_PATH = "/etc/mdns.allow"

# Mode and debug level, e.g. "native", "2", "builtin+1" or "1+native".
DEBUG_ENV_VAR = "HOSTLOOKUP_DNS"

_BUILTIN_MODES = frozenset(("builtin", "go"))
_NATIVE_MODES = frozenset(("native", "cgo"))

# Setting any of these changes what libc's resolver does, even when empty.
_RESOLVER_ENV_VARS = ("RES_OPTIONS", "HOSTALIASES", "LOCALDOMAIN")


class SystemConfig(typing.NamedTuple):
    """
    The machine's resolver configuration, as far as routing lookups goes.

    Built once per process by :func:`get_system_config`. Tests and embedders
    can build their own with :func:`build_system_config` or construct one
    directly.
    """

    os_family: OSFamily = OSFamily.linux
    # Always hand hostname lookups to the native resolver.
    force_native_lookup: bool = False
    net_builtin: bool = False
    net_native: bool = False
    has_mdns_allow: bool = False
    debug_level: int = 0
    resolv: ResolvConfig = ResolvConfig()


def parse_debug_setting(value: str | None) -> tuple[str, int]:
    """
    Split the ``HOSTLOOKUP_DNS`` value into ``(mode, debug_level)``.

    Either part may be omitted and they can come in either order::

        1            # debug level 1
        native       # use the native resolver
        builtin+2    # use the built-in resolver, debug level 2
        2+builtin    # same
    """
    mode = ""
    level = 0
    for part in (value or "").split("+", 1):
        if not part:
            continue
        if part[0].isdigit():
            digits = len(part) - len(part.lstrip("0123456789"))
            level = int(part[:digits])
        else:
            mode = part
    return mode, level


def _log_mode(config: SystemConfig, built_with_builtin: bool) -> None:
    if config.debug_level > 1:
        log.debug("net_native=%s net_builtin=%s", config.net_native, config.net_builtin)
    if config.net_builtin:
        if built_with_builtin:
            log.debug("configured to use the built-in DNS resolver")
        else:
            log.debug("%s setting forcing use of the built-in resolver", DEBUG_ENV_VAR)
    elif config.force_native_lookup:
        log.debug("using the native DNS resolver")
    else:
        log.debug("dynamic selection of DNS resolver")


def build_system_config(
    *,
    environ: typing.Mapping[str, str] | None = None,
    os_family: OSFamily | None = None,
    net_builtin: bool = False,
    net_native: bool = False,
    resolv_conf_path: str = RESOLV_CONF_PATH,
    mdns_allow_path: str = MDNS_ALLOW_PATH,
) -> SystemConfig:
    """
    Inspect the environment and the filesystem and build a
    :class:`SystemConfig`.

    :param net_builtin:
        Always prefer the built-in resolver, as if ``HOSTLOOKUP_DNS=builtin``.

    :param net_native:
        Always prefer the native resolver, as if ``HOSTLOOKUP_DNS=native``.
    """
    if environ is None:
        environ = os.environ
    if os_family is None:
        os_family = detect_os_family()

    mode, debug_level = parse_debug_setting(environ.get(DEBUG_ENV_VAR))
    config = SystemConfig(
        os_family=os_family,
        net_builtin=net_builtin or mode in _BUILTIN_MODES,
        net_native=net_native or mode in _NATIVE_MODES,
        debug_level=debug_level,
    )
    config = _inspect_system(config, environ, resolv_conf_path, mdns_allow_path)
    if config.debug_level > 0:
        _log_mode(config, net_builtin)
    return config


def _inspect_system(
    config: SystemConfig,
    environ: typing.Mapping[str, str],
    resolv_conf_path: str,
    mdns_allow_path: str,
) -> SystemConfig:
    family = config.os_family

    if not family.has_native_resolver:
        # "native" here means the OS API, there's no libc resolver to avoid.
        if not config.net_builtin and not config.net_native:
            config = config._replace(net_native=True)
        return config

    # Darwin pops up dialog boxes if programs do their own DNS requests.
    if family.is_apple:
        return config._replace(force_native_lookup=True)

    if config.net_native or any(var in environ for var in _RESOLVER_ENV_VARS):
        return config._replace(force_native_lookup=True)

    # OpenBSD lets ASR_CONFIG point libc at another resolv.conf.
    if family is OSFamily.openbsd and environ.get("ASR_CONFIG"):
        return config._replace(force_native_lookup=True)

    resolv = read_resolv_conf(resolv_conf_path)
    config = config._replace(resolv=resolv)
    if resolv.err is not None and not isinstance(
        resolv.err, (FileNotFoundError, PermissionError)
    ):
        # Assume the unreadable file had something important in it.
        config = config._replace(force_native_lookup=True)

    if os.path.exists(mdns_allow_path):
        config = config._replace(has_mdns_allow=True)

    return config


_system_config: SystemConfig | None = None
_system_config_lock = threading.Lock()


def get_system_config() -> SystemConfig:
    """
    Return the process-wide :class:`SystemConfig`, building it on first use.

    Concurrent first callers wait for a single build; every call returns the
    same object afterwards.
    """
    global _system_config

    config = _system_config
    if config is not None:
        return config

    with _system_config_lock:
        if _system_config is None:
            _system_config = build_system_config()
        return _system_config


def reset_system_config() -> None:
    """Forget the cached configuration so the next call rebuilds it."""
    global _system_config

    with _system_config_lock:
        _system_config = None
