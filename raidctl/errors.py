"""
errors.py
Exception hierarchy. Every failure is terminal for the invocation; cli.main()
reports the message once and exits non-zero.
"""
from __future__ import annotations


class RaidctlError(Exception):
    """Base class for all failures reported to the user."""


class UsageError(RaidctlError):
    """Unknown option, bad option argument or illegal option combination."""


class PrivilegeError(RaidctlError):
    pass


class ResourceError(RaidctlError):
    """Lock or metadata could not be acquired."""


class LockError(ResourceError):
    pass


class MetadataError(ResourceError):
    pass


class DispatchError(RaidctlError):
    """No dispatch rule matched a validated ActionSet (table defect)."""


class BackendError(RaidctlError):
    """Raised by the metadata layer when an operation fails or is unsupported."""
