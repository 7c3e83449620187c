from __future__ import annotations

import typing

# Base Exceptions


class HostLookupError(Exception):
    """Base exception used by this module."""

    pass


_TYPE_REDUCE_RESULT = typing.Tuple[
    typing.Callable[..., object], typing.Tuple[object, ...]
]


class ConfigParseError(ValueError, HostLookupError):
    """Raised when a resolver configuration file can't be understood."""

    def __init__(self, path: str | None, message: str) -> None:
        self.path = path
        self.message = message
        if path:
            super().__init__(f"{path}: {message}")
        else:
            super().__init__(message)

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.path, self.message)


class NSSConfigParseError(ConfigParseError):
    """Raised when an nsswitch.conf line is malformed.

    The parser never raises it directly, the instance is carried on
    :attr:`hostlookup.util.nss.NSSConfig.err` instead.
    """

    pass


class HostnameLookupError(HostLookupError):
    """Raised when the machine's own hostname can't be determined."""

    # The original error, if any, is also available as __cause__.
    original_error: Exception | None

    def __init__(self, message: str, error: Exception | None = None) -> None:
        super().__init__(message, error)
        self.original_error = error

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.args[0], self.original_error)
