"""Exceptions raised by review sources."""

from __future__ import annotations


class SourceError(Exception):
    """A review source could not answer a query.

    Raised for failed CLI invocations, API errors and malformed payloads.
    Callers in the core treat it as "no data yet" and keep polling.
    """
