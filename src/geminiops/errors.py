class GeminiOpsError(Exception):
    """Base exception for the geminiops package."""


class MissingCredentialError(GeminiOpsError):
    """Raised when the service API key is not available in the environment."""


class InvalidArgumentError(GeminiOpsError):
    """Raised for a missing prompt/input, a malformed option value, or too many images."""


class RemoteCallError(GeminiOpsError):
    """Raised when the remote generative service call fails (message passed through)."""
