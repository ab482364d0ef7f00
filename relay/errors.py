"""
Error taxonomy for the relay.

None of these are fatal once the loops are running: ingest and publish
failures are logged and the affected cycle or entry is retried later.
"""


class RelayError(Exception):
    """Base class for relay errors."""


class IdentityError(RelayError):
    """Records with an unknown or mismatched flight identity were compared."""


class SourceAccessError(RelayError):
    """The snapshot source could not be stat'ed, opened or fetched."""


class DecodeError(RelayError):
    """The snapshot body is not a valid aircraft.json document."""


class SinkError(RelayError):
    """A message could not be delivered to the event bus."""
