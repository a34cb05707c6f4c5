"""
Custom exception classes for the CLI interface.

This module defines CLI-specific exceptions that provide clear error messages
and appropriate exit codes for different error conditions.
"""


class CLIError(Exception):
    """Base exception for CLI-related errors."""

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class ValidationError(CLIError):
    """Raised when user input validation fails."""

    def __init__(self, message: str):
        super().__init__(f"Validation Error: {message}", exit_code=2)


class ConfigurationError(CLIError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str):
        super().__init__(f"Configuration Error: {message}", exit_code=5)


class ProcessingError(CLIError):
    """Raised when schedule extraction fails."""

    def __init__(self, message: str):
        super().__init__(f"Processing Error: {message}", exit_code=6)


class OCRUnavailableError(CLIError):
    """Raised when the OCR engine or the normalization service cannot be reached."""

    def __init__(self, message: str = "OCR resources are not available"):
        super().__init__(f"OCR Error: {message}", exit_code=7)


class UserCancelledError(CLIError):
    """Raised when user cancels an operation."""

    def __init__(self, message: str = "Operation cancelled by user"):
        super().__init__(message, exit_code=130)  # Standard SIGINT exit code
