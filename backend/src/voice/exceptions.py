"""
Error taxonomy of the voice pipeline.

Only InputError and AcquisitionError reach the caller. The others are
contained inside the pipeline: ReconciliationDataError degrades one line
to an unmatched line, PersistenceWarning is logged and dropped.
"""
import enum

from src.common.exceptions import AppError


class ErrorKind(str, enum.Enum):
    INPUT = "input_error"
    ACQUISITION = "acquisition_error"
    RECONCILIATION_DATA = "reconciliation_data_error"
    PERSISTENCE = "persistence_warning"
    INCOMPLETE = "incomplete"


class VoiceError(AppError):
    """Base exception for voice pipeline errors"""
    kind: ErrorKind = ErrorKind.INPUT

    def __init__(self, message: str, retryable: bool = False):
        self.message = message
        self.retryable = retryable
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class InputError(VoiceError):
    """Empty, oversized or unsupported audio, or an unsupported language"""
    kind = ErrorKind.INPUT


class AcquisitionError(VoiceError):
    """Speech-to-text service failed or timed out"""
    kind = ErrorKind.ACQUISITION

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message, retryable=retryable)


class ReconciliationDataError(VoiceError):
    """Catalog read failed"""
    kind = ErrorKind.RECONCILIATION_DATA

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message, retryable=retryable)


class PersistenceWarning(VoiceError):
    """Metrics write failed; logged only"""
    kind = ErrorKind.PERSISTENCE
