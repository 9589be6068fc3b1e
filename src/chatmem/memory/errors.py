"""Exception hierarchy for the memory subsystem.

Point lookups on missing ids return None and never raise. Everything else
that cannot complete raises one of these.
"""


class ChatMemoryError(Exception):
    """Base class for all chatmem errors."""


class NotInitializedError(ChatMemoryError):
    """Operation invoked before a successful initialize()."""

    def __init__(self, component: str = "Storage"):
        super().__init__(f"{component} not initialized")


class NoActiveSessionError(ChatMemoryError):
    """Current-session operation invoked before start_session()."""

    def __init__(self):
        super().__init__("No active session. Call start_session() first.")


class StorageError(ChatMemoryError):
    """Underlying file, network or remote-store fault.

    The original exception is chained as __cause__.
    """


class StorageInitializationError(StorageError):
    """Backend could not be initialized."""


class ConfigurationError(ChatMemoryError, ValueError):
    """Missing or invalid construction parameters."""
