"""
Base exception for PhantomHub.

Each subpackage defines its own exceptions module deriving from
PhantomHubError so callers can catch the whole family at the CLI boundary.
"""


class PhantomHubError(Exception):
    """Root of all PhantomHub errors."""
    pass
