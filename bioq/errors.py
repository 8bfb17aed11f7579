from __future__ import annotations

"""Error taxonomy.

Only LoadFailure and PersistenceFailure are ever shown to the user; the
others are caught where they occur and turned into a fallback.
"""


class BioQError(Exception):
    """Base class for BioQ errors."""


class LoadFailure(BioQError):
    """Question bank unreachable or unparseable. Terminal, no retry."""


class CorruptLocalState(BioQError):
    """Stored session record unparseable or schema-mismatched."""


class PersistenceFailure(BioQError):
    """Attempt could not be saved; the user may retry."""


class PersistenceConflict(PersistenceFailure):
    """An attempt for this identity and day already exists."""


class StorageWriteFailure(BioQError):
    """Local durable store full or unavailable."""
