from __future__ import annotations

import errno

from hostlookup.util.nss import NSSConfig, parse_nss_conf
from hostlookup.util.resolv_conf import ResolvConfig


def nss_str(text: str) -> NSSConfig:
    return parse_nss_conf(text)


# Represents a ResolvConfig returned by reading a nonexistent resolv.conf.
DEFAULT_RESOLV_CONF = ResolvConfig(
    err=FileNotFoundError(errno.ENOENT, "No such file or directory")
)
