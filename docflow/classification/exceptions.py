class ClassificationError(Exception):
    """Raised when classification fails."""


class ClassificationValidationError(ClassificationError):
    """Raised when the engine's answer does not match the expected shape."""


class ClassificationNetworkError(ClassificationError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""


class ClassificationConfigError(ClassificationError):
    """Raised at startup when the prompt, schema or vocabulary is invalid."""
