"""
Error types for Atom Nexus.

Only structural failures are raised. Expected conditions (empty input,
low confidence, unsupported reasoning type) come back as ordinary
zero-confidence results instead.
"""


class NexusError(Exception):
    """Base class for all Atom Nexus errors."""


class AtomSpaceImportError(NexusError):
    """An import payload could not be parsed into atoms."""


class NotFoundError(NexusError):
    """A referenced record (e.g. a learning model) does not exist."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")
