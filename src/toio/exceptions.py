"""Exceptions raised by the toio driver."""

from __future__ import annotations


class ToioError(Exception):
    """Base error for toio."""


class TransportError(ToioError):
    """Raised when the BLE layer rejects a connect, write, read or subscribe."""


class ConnectError(TransportError):
    """Raised when a connection to a cube cannot be established."""


class DisconnectedError(TransportError):
    """Raised when the connection is closed or lost.

    Used both for operations attempted while not connected and for pending
    requests abandoned because the link went down.
    """


class DecodeError(ToioError):
    """Raised when inbound bytes cannot be decoded into a frame."""


class UnknownTypeError(DecodeError):
    """Raised when the leading type byte is not known for the characteristic."""


class TruncatedError(DecodeError):
    """Raised when a payload is shorter than its frame layout requires."""


class ResponseTimeoutError(ToioError):
    """Raised when an awaited response does not arrive in time."""


class NotFoundError(ToioError):
    """Raised when discovery finds no cube."""


class ProtocolError(ToioError):
    """Raised when the cube reports a failure result."""
