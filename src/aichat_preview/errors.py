"""Exception types for aichat-preview.

Parsing of model output never raises: malformed text is skipped, repaired
or falls back to a plainer classification. Only store and model access
failures surface to callers.
"""


class AichatPreviewError(Exception):
    """Base class for all aichat-preview errors."""


class InvalidSessionIdError(AichatPreviewError, ValueError):
    """The session id is empty or contains characters we do not accept."""


class StoreUnavailableError(AichatPreviewError):
    """Durable storage could not be reached. The caller may retry."""

    retryable = True


class ModelProviderError(AichatPreviewError):
    """The model provider call failed or the provider is not configured."""

    def __init__(self, message: str, configured: bool = True):
        super().__init__(message)
        self.configured = configured
