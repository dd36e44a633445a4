"""
Custom exceptions for the buffered request logging package.
"""

# canonical package-level exception

class LogBufferError(Exception):
    """
    Base exception for all errors raised by logbuffer.

    - message: human-friendly message
    - error_code: canonical short code (e.g., 'invalid_target', 'invalid_spec')
    """

    def __init__(self, message: str, *, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self) -> str:
        if self.error_code:
            return f"{self.message} (code: {self.error_code})"
        return self.message


class ConfigurationError(LogBufferError):
    """
    Raised when the logging configuration can not be turned into a working setup.

    These are startup-time errors: the fix is a configuration change, not a
    runtime recovery.
    """


class FieldSpecError(ConfigurationError, TypeError):
    """A field or tag specification resolved to a value of an unsupported type."""

    def __init__(self, message: str):
        super().__init__(message, error_code="invalid_spec")


class AdapterError(ConfigurationError, TypeError):
    """No log handler can be built for the configured log device."""

    def __init__(self, message: str):
        super().__init__(message, error_code="invalid_target")


class SuppressorError(LogBufferError):
    """The access-logger suppression could not be installed on the given class."""

    def __init__(self, message: str):
        super().__init__(message, error_code="invalid_access_logger")


class LoggerNotConfiguredError(LogBufferError):
    """
    Raised when a request logger is requested but no BufferedLoggingMiddleware
    attached one to the current request.
    """

    def __init__(self, message: str = "No request logger attached to this request"):
        super().__init__(message, error_code="logger_missing")
