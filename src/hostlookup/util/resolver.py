from __future__ import annotations

import typing


class Resolver(typing.NamedTuple):
    """Per-call options for routing a host lookup.

    Passing one to :func:`hostlookup.order.host_lookup_order` lets a caller
    ask for the built-in resolver even when the process-wide configuration
    wouldn't pick it, much like setting ``prefer_builtin`` on a single
    resolver instance instead of for the whole process.
    """

    prefer_builtin: bool = False


def prefers_builtin(resolver: Resolver | None) -> bool:
    return resolver is not None and resolver.prefer_builtin
