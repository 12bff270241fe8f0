class PipelineError(Exception):
    """Base exception for all pipeline coordination errors."""


class MalformedEnvelopeError(PipelineError):
    """Raised when a stage receives structurally invalid input."""


class PersistenceError(PipelineError):
    """Raised when the document store cannot be read or written."""


class ExternalEngineError(PipelineError):
    """Raised when an extraction or classification engine fails for one attachment."""


class ReconciliationMiss(PipelineError):
    """An envelope references a submission that does not exist. Logged, never propagated."""
