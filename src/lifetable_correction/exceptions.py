"""
lifetable_correction/exceptions.py - Error Types

Author: Palaeodemography Pipeline Project
License: MIT
"""


class LifeTableCorrectionError(Exception):
    """Base class for all errors raised by this package."""


class LifeTableTypeError(LifeTableCorrectionError, TypeError):
    """Input is neither a LifeTable nor a LifeTableList."""


class RatioDomainError(LifeTableCorrectionError, ValueError):
    """Juvenile or senility ratio lies outside the regressions' valid domain."""


class UnsupportedLayoutError(LifeTableCorrectionError, ValueError):
    """First age class(es) match neither the 5-year nor the 1+4-year shape."""
