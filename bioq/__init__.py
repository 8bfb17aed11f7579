"""BioQ package initialization.

Biology quiz engine: seeded question selection, timed question sessions
and a resumable daily Weekly Challenge.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
