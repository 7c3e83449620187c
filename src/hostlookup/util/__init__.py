from __future__ import annotations

# For convenience, allow you to access the helpers from here.
from .nss import (
    NSSConfig,
    NSSConfigCache,
    NSSCriterion,
    NSSSource,
    SourceKind,
    get_system_nss,
    parse_nss_conf,
    read_nss_conf,
    set_system_nss,
)
from .platform import OSFamily, detect_os_family
from .resolv_conf import ResolvConfig, parse_resolv_conf, read_resolv_conf
from .resolver import Resolver

__all__ = (
    "NSSConfig",
    "NSSConfigCache",
    "NSSCriterion",
    "NSSSource",
    "OSFamily",
    "ResolvConfig",
    "Resolver",
    "SourceKind",
    "detect_os_family",
    "get_system_nss",
    "parse_nss_conf",
    "parse_resolv_conf",
    "read_nss_conf",
    "read_resolv_conf",
    "set_system_nss",
)
