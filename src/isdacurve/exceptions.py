"""
Custom exceptions for the ISDA credit curve calibrator.
"""


class CDSError(Exception):
    """Base exception for all credit curve errors."""


class ValidationError(CDSError, ValueError):
    """Malformed input detected before any numerical work."""


class CurveError(ValidationError):
    """Error related to curve construction or interpolation."""


class ConvergenceError(CDSError):
    """Root finding failed to converge."""


class BootstrapError(CDSError):
    """Error during credit curve bootstrapping."""

    def __init__(self, message: str, pillar: int | None = None):
        super().__init__(message)
        self.pillar = pillar


class ArbitrageError(BootstrapError):
    """A pillar cannot be fitted without a negative forward hazard rate."""
