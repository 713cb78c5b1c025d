"""
Custom Exception classes for Epochipy.

This module defines a hierarchy of exception classes specific to Epochipy.
All custom exceptions inherit from the base EpochipyError class, which
itself inherits from Python's Exception class.

Load and event-extraction errors abort a run. Epoch drops are never raised:
they are recorded on the EpochSet and only reduce the epoch count. Fitter
convergence failures carry the optimizer diagnostic with them.
"""
from typing import List, Optional


class EpochipyError(Exception):
    """Base class for Epochipy specific errors."""

    pass


class LoadError(EpochipyError, IOError):
    """The recording could not be loaded."""

    pass


class FileReadError(LoadError):
    """Error occurred during file reading or parsing by an adapter."""

    pass


class RecordingNotFoundError(LoadError):
    """Error raised when a specified file does not exist."""

    pass


class UnsupportedFormatError(LoadError, ValueError):
    """File format is not supported by any available reader."""

    pass


class NoEventsFoundError(EpochipyError):
    """The trigger channel (or annotation list) contained no events."""

    pass


class EpochDrop(EpochipyError):
    """
    Non-fatal record of a skipped epoch.

    Instances are collected in ``EpochSet.drops`` and never raised out of
    segmentation.
    """

    reason = "DROPPED"

    def __init__(self, event_index: int, sample: int, code: int, detail: str = ""):
        self.event_index = event_index
        self.sample = sample
        self.code = code
        self.detail = detail
        super().__init__(f"{self.reason}: event {event_index} (sample {sample}, code {code}) {detail}".rstrip())


class EpochOutOfBoundsDrop(EpochDrop):
    """Epoch window extends beyond the recording bounds."""

    reason = "OUT_OF_BOUNDS"


class EpochRejectedDrop(EpochDrop):
    """Epoch exceeded a peak-to-peak rejection or flatness threshold."""

    reason = "REJECTED"


class ConfigurationError(EpochipyError, ValueError):
    """Invalid analysis configuration."""

    pass


class ProcessingError(EpochipyError):
    """Error occurred during signal processing."""

    pass


class AnalysisError(EpochipyError):
    """Error occurred during data analysis operations."""

    pass


class ConvergenceError(AnalysisError):
    """
    The mixed-model optimizer could not produce stable estimates.

    ``diagnostics`` holds the optimizer messages (warnings, convergence flag,
    covariance eigenvalues) that led to the failure.
    """

    def __init__(self, message: str, diagnostics: Optional[List[str]] = None):
        self.diagnostics: List[str] = list(diagnostics or [])
        if self.diagnostics:
            message = f"{message} [{'; '.join(self.diagnostics)}]"
        super().__init__(message)


class PredictionError(AnalysisError):
    """A prediction grid row cannot be evaluated by the fitted model."""

    pass


class SamplingError(AnalysisError):
    """Requested bootstrap draws exceed the simulation budget or are invalid."""

    pass


class PlottingError(EpochipyError):
    """Error occurred during plot generation."""

    pass


class ExportError(EpochipyError, IOError):
    """Error occurred during file saving/exporting."""

    pass
