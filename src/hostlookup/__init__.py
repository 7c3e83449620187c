"""
Decide whether a hostname lookup should use a built-in resolver or the
operating system's own, the way glibc and the BSD libcs are configured.
"""

from __future__ import annotations

# Set default logging handler to avoid "No handler found" warnings.
import logging
import typing
from logging import NullHandler

from . import exceptions
from ._version import __version__
from .config import SystemConfig, build_system_config, get_system_config
from .order import LookupOrder, can_use_native, host_lookup_order
from .util.nss import get_system_nss
from .util.platform import OSFamily
from .util.resolver import Resolver

__license__ = "MIT"
__version__ = __version__

__all__ = (
    "LookupOrder",
    "OSFamily",
    "Resolver",
    "SystemConfig",
    "add_stderr_logger",
    "build_system_config",
    "can_use_native",
    "exceptions",
    "get_system_config",
    "get_system_nss",
    "host_lookup_order",
    "lookup_order",
)

logging.getLogger(__name__).addHandler(NullHandler())


def add_stderr_logger(
    level: int = logging.DEBUG,
) -> logging.StreamHandler[typing.TextIO]:
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    # even if hostlookup is vendored within another package.
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


# ... Clean up.
del NullHandler


def lookup_order(hostname: str, resolver: Resolver | None = None) -> LookupOrder:
    """
    A convenience, top-level helper. It decides against the process-wide
    configuration from :func:`get_system_config`.
    """
    return host_lookup_order(get_system_config(), hostname, resolver)
