"""Task and user service with a bidirectional assignment consistency engine."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
