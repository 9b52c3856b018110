class TransformError(RuntimeError):
    """Raised when the transform engine fails for a single file."""

    def __init__(self, file_path: str, message: str) -> None:
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path


class EngineLoadError(ValueError):
    """Raised when an engine import string cannot be turned into an engine."""
