"""
Error taxonomy for the mold layout core.

  InvalidInputError:       caller supplied something unusable; fatal.
  DegenerateGeometryError: zero mass / zero area / coincident points.
                             Raised by low-level numeric helpers only; the
                             scorers catch it and fall back to fixed scores.
  EnumerationOverflowError: partition search hit its configured cap while
                             running in strict mode.
"""


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class MoldLayoutError(Exception):
    """Base class for all mold layout errors."""


class InvalidInputError(MoldLayoutError, ValueError):
    """Input is malformed, inconsistent or outside the supported range."""


class DegenerateGeometryError(MoldLayoutError, ArithmeticError):
    """Geometry has no usable extent or mass."""


class EnumerationOverflowError(MoldLayoutError, RuntimeError):
    """Partition enumeration exceeded the configured cap."""

    def __init__(self, message: str, produced: int = 0):
        super().__init__(message)
        self.produced = produced
