"""Backend exports.

The Gemini backend pulls in the `google-genai` client; import it lazily so the
argument/validation layers stay importable (and testable) on their own.
"""

from .base_backend import GenerativeBackend

__all__ = [
    "GenerativeBackend",
    "GeminiBackendConfig",
    "GeminiBackend",
]


def __getattr__(name: str):
    if name in {"GeminiBackendConfig", "GeminiBackend"}:
        from .gemini import GeminiBackend, GeminiBackendConfig

        return GeminiBackendConfig if name == "GeminiBackendConfig" else GeminiBackend

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
