"""
Centralized error handling utilities for CLI commands.

This module maps extraction errors onto CLI errors with exit codes and
prints recovery suggestions that distinguish a bad file from a missing OCR
installation or an unreachable normalization service.
"""

import logging
from typing import Dict, Any, Optional, Callable
from functools import wraps

from cli.exceptions import (
    CLIError,
    ProcessingError,
    OCRUnavailableError,
    ConfigurationError as CLIConfigurationError,
    ValidationError as CLIValidationError,
    UserCancelledError
)
from cli.formatters import print_error, print_info
from rate_extraction.exceptions import (
    RateExtractionError,
    PDFReadabilityError,
    PDFPasswordError,
    OCRAssetError,
    OCRNormalizationError,
    ExtractionCancelledError,
    ConfigurationError
)

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Centralized error handling with recovery suggestions."""

    @staticmethod
    def handle_readability_error(error: PDFReadabilityError, context: Dict[str, Any]) -> None:
        """
        Handle PDF files that cannot be opened.

        Args:
            error: The readability error that occurred
            context: Additional context about the operation that failed
        """
        file_path = error.pdf_path or context.get('file_path', 'unknown')

        if isinstance(error, PDFPasswordError):
            print_error(f"The PDF is password protected: {file_path}")
            print_info("Recovery suggestions:")
            print_info("  1. Remove the password with a PDF viewer and save a copy")
            print_info("  2. Ask the issuer for an unprotected copy")
        else:
            print_error(f"The PDF file is invalid or corrupt: {file_path}")
            print_info("Recovery suggestions:")
            print_info("  1. Try opening the file in a PDF viewer")
            print_info("  2. Check the file size (should not be 0 bytes)")
            print_info("  3. Download or scan the document again")

    @staticmethod
    def handle_ocr_asset_error(error: OCRAssetError, context: Dict[str, Any]) -> None:
        """
        Handle a missing OCR engine or an unreachable OCR service.

        Args:
            error: The asset error
            context: Additional context about the operation
        """
        print_error(str(error))
        print_info("Recovery suggestions:")
        if 'network' in str(error).lower():
            print_info("  1. Check your network connection")
            print_info("  2. Verify the normalization endpoint URL")
            print_info("  3. Retry later if the service is overloaded")
        else:
            print_info("  1. Install Tesseract OCR and make sure it is on PATH")
            print_info("  2. Install the Italian language data (tesseract-ocr-ita)")
            print_info("  3. Re-run with --no-ocr to use the text layer only")

    @staticmethod
    def handle_normalization_error(error: OCRNormalizationError, context: Dict[str, Any]) -> None:
        """Handle a rejection from the normalization service."""
        print_error(str(error))
        print_info("Recovery suggestions:")
        print_info("  1. Check that the uploaded file is a valid PDF")
        print_info("  2. Retry without an endpoint to run OCR locally")

    @staticmethod
    def handle_processing_error(error: RateExtractionError, context: Dict[str, Any]) -> None:
        """Handle any other extraction failure."""
        file_path = error.pdf_path or context.get('file_path', 'unknown')
        print_error(f"Extraction failed for {file_path}: {error}")
        print_info("Recovery suggestions:")
        print_info("  1. Re-run with --verbose to see the extraction log")
        print_info("  2. Check whether the document has a text layer:")
        print_info(f"     rate-extractor probe {file_path}")

    @staticmethod
    def handle_configuration_error(error: ConfigurationError, context: Dict[str, Any]) -> None:
        """
        Handle configuration-related errors.

        Args:
            error: The configuration error
            context: Additional context
        """
        print_error(f"Configuration error: {error}")
        print_info("Recovery suggestions:")
        print_info("  1. Check the JSON file passed with --config-file")
        print_info("  2. Check RATE_EXTRACTOR_* environment variables")

    @staticmethod
    def with_error_handling(error_context: Optional[Dict[str, Any]] = None):
        """
        Decorator for consistent error handling across commands.

        Args:
            error_context: Additional context to include in error handling

        Returns:
            Decorator function that wraps command functions with error handling
        """
        if error_context is None:
            error_context = {}

        def decorator(func: Callable):
            @wraps(func)
            def wrapper(*args, **kwargs):
                try:
                    return func(*args, **kwargs)

                except CLIValidationError as e:
                    logger.debug(f"CLI validation error in {func.__name__}: {e}")
                    print_error(str(e))
                    raise

                except CLIError:
                    raise

                except ExtractionCancelledError as e:
                    logger.info(f"Extraction cancelled in {func.__name__}")
                    raise UserCancelledError(str(e)) from e

                except ConfigurationError as e:
                    logger.warning(f"Configuration error in {func.__name__}: {e}")
                    ErrorHandler.handle_configuration_error(e, error_context)
                    raise CLIConfigurationError(str(e)) from e

                except PDFReadabilityError as e:
                    logger.error(f"Unreadable PDF in {func.__name__}: {e}")
                    ErrorHandler.handle_readability_error(e, error_context)
                    raise ProcessingError(str(e)) from e

                except OCRAssetError as e:
                    logger.error(f"OCR unavailable in {func.__name__}: {e}")
                    ErrorHandler.handle_ocr_asset_error(e, error_context)
                    raise OCRUnavailableError(str(e)) from e

                except OCRNormalizationError as e:
                    logger.error(f"Normalization failed in {func.__name__}: {e}")
                    ErrorHandler.handle_normalization_error(e, error_context)
                    raise ProcessingError(str(e)) from e

                except RateExtractionError as e:
                    logger.error(f"Extraction error in {func.__name__}: {e}")
                    ErrorHandler.handle_processing_error(e, error_context)
                    raise ProcessingError(str(e)) from e

                except KeyboardInterrupt:
                    logger.info(f"User interrupted {func.__name__}")
                    print_info("\nOperation cancelled by user.")
                    raise UserCancelledError()

            return wrapper
        return decorator


def handle_errors(error_context: Optional[Dict[str, Any]] = None):
    """
    Decorator for consistent error handling across commands.

    This is an alias for ErrorHandler.with_error_handling.
    """
    return ErrorHandler.with_error_handling(error_context)
