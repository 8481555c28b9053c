"""Exception and warning types raised by ipbesmaps."""

from __future__ import annotations


class IpbesMapsError(Exception):
    """Base class for package errors."""


class InvalidArgumentError(IpbesMapsError, ValueError):
    """Caller passed an argument outside the accepted domain."""


class MapTypeNotImplementedError(IpbesMapsError, NotImplementedError):
    """Map type is reserved but has no renderer yet."""


class BoundaryDataError(IpbesMapsError):
    """Boundary file was read but cannot be used for joins."""


class IpbesMapsWarning(UserWarning):
    """Base class for recoverable conditions reported to the caller."""


class MissingInputWarning(IpbesMapsWarning):
    """No input table was given; bundled defaults are used instead."""


class PartialCoverageWarning(IpbesMapsWarning):
    """Some input codes have no boundary polygon and were dropped."""
