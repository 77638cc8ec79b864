"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by providers, the composite, the
builder, and consuming applications. The hierarchy lives in the domain layer to
respect the Clean Architecture dependency rule (outer layers may depend on
inner layers, not vice versa).

Contents
--------
* :class:`SettingsError` – umbrella base class for all settings-related issues.
* :class:`InvalidFormat` – a backing document could not be parsed or written.
* :class:`NotFound` – an optional resource (file, table) is missing.
* :class:`UnsupportedOperation` – a write hit a read-only provider, or a store
  lacks an optional capability such as change notification.
* :class:`InvalidOperation` – a policy violation; specialised by
  :class:`ReadOnlyWriteTarget`, :class:`NoWritableProvider`, and
  :class:`ProviderClosed`.
* :class:`OperationCancelled` – an asynchronous operation observed a fired
  cancellation token.

System Role
-----------
Read-path type mismatches are never errors; everything else surfaces through
this hierarchy or as an unmodified I/O exception from a leaf provider. Callers
catch :class:`SettingsError` to handle all library failures uniformly.
"""

from __future__ import annotations


class SettingsError(Exception):
    """Base type for all exceptions emitted by ``lib_layered_settings``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class InvalidFormat(SettingsError):
    """Raised when a backing document cannot be parsed into settings or written back.

    Typical Sources
    ---------------
    Structured file providers (:mod:`json`, :mod:`yaml`, :mod:`tomllib`,
    :mod:`xml.etree.ElementTree`, :mod:`configparser`).
    """


class NotFound(SettingsError):
    """Represents missing-but-optional resources (files, directories, etc.).

    File providers treat this as an empty document rather than a failure.
    """


class UnsupportedOperation(SettingsError):
    """Raised when the target of a call cannot perform it at all.

    Why
    ----
    Writes against a read-only provider must fail loudly and immediately; they
    are never retried or redirected.
    """


class InvalidOperation(SettingsError):
    """Raised when a call is well-formed but the current configuration forbids it."""


class ReadOnlyWriteTarget(InvalidOperation):
    """The explicitly designated write target of a composite is read-only."""


class NoWritableProvider(InvalidOperation):
    """A composite has no explicit write target and every member is read-only."""


class ProviderClosed(InvalidOperation):
    """An operation was attempted after :meth:`close` released the provider."""


class OperationCancelled(SettingsError):
    """An asynchronous operation was cancelled through its cancellation token.

    Why
    ----
    Cancellation must be distinguishable from I/O failure. Partial effects of
    the interrupted operation are not rolled back.
    """
