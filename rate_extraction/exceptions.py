"""
Custom exceptions for rate schedule extraction.

This module defines the exception classes raised while opening, probing,
rasterizing and recognizing installment-plan PDFs, plus a helper that maps
third-party library errors onto this taxonomy.
"""

from typing import Optional, Dict, Any


class RateExtractionError(Exception):
    """Base exception for all rate schedule extraction errors."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.pdf_path = pdf_path
        self.details = details or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.pdf_path:
            base_msg = f"{base_msg} (PDF: {self.pdf_path})"
        return base_msg


class PDFReadabilityError(RateExtractionError):
    """Raised when a PDF file is missing, invalid or corrupt."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, pdf_path)
        self.original_error = original_error
        if original_error:
            self.details['original_error'] = str(original_error)
            self.details['error_type'] = type(original_error).__name__


class PDFPasswordError(PDFReadabilityError):
    """Raised when a PDF is protected by a password."""


class TextExtractionError(RateExtractionError):
    """Raised when a page cannot be read or rendered."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 page_number: Optional[int] = None,
                 extraction_method: Optional[str] = None):
        super().__init__(message, pdf_path)
        self.page_number = page_number
        self.extraction_method = extraction_method

        if page_number is not None:
            self.details['page_number'] = page_number
        if extraction_method:
            self.details['extraction_method'] = extraction_method


class OCRError(RateExtractionError):
    """Base exception for the OCR path."""


class OCRAssetError(OCRError):
    """
    Raised when the recognition engine or its assets cannot be reached.

    This covers a missing tesseract binary, missing language data and network
    failures talking to the normalization endpoint. Callers should suggest
    checking the installation or the connection rather than the file.
    """

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, pdf_path)
        self.original_error = original_error
        if original_error:
            self.details['original_error'] = str(original_error)
            self.details['error_type'] = type(original_error).__name__


class OCRNormalizationError(OCRError):
    """Raised when the remote normalization endpoint rejects a document."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 status_code: Optional[int] = None,
                 response_text: Optional[str] = None):
        super().__init__(message, pdf_path)
        self.status_code = status_code
        self.response_text = response_text
        if status_code is not None:
            self.details['status_code'] = status_code
        if response_text:
            # Keep the first 500 chars of the server message
            self.details['response_text'] = response_text[:500]


class ExtractionCancelledError(RateExtractionError):
    """Raised when a cancellation is requested between pages."""


class ConfigurationError(RateExtractionError):
    """Raised when extraction settings are invalid."""


def _unwrap(error: Exception) -> Exception:
    """Return the pdfminer error wrapped by pdfplumber, if any."""
    if type(error).__name__ == 'PdfminerException':
        if error.args and isinstance(error.args[0], Exception):
            return error.args[0]
    if error.__cause__ is not None and isinstance(error.__cause__, Exception):
        return error.__cause__
    return error


def classify_pdf_error(error: Exception, pdf_path: Optional[str] = None) -> RateExtractionError:
    """
    Map an exception raised while handling a PDF onto the error taxonomy.

    Args:
        error: The exception to classify
        pdf_path: Path of the document being processed

    Returns:
        A RateExtractionError subclass instance (never raises)
    """
    if isinstance(error, RateExtractionError):
        return error

    original = _unwrap(error)
    name = type(original).__name__
    message = str(original) or name

    if 'Password' in name or 'Encryption' in name or 'password' in message.lower():
        return PDFPasswordError(
            "The PDF is password protected",
            pdf_path=pdf_path,
            original_error=original
        )

    if name in ('TesseractNotFoundError', 'TesseractError') or 'tesseract' in message.lower():
        return OCRAssetError(
            f"OCR engine unavailable: {message}",
            pdf_path=pdf_path,
            original_error=original
        )

    if name in ('ConnectionError', 'Timeout', 'ConnectTimeout', 'ReadTimeout'):
        return OCRAssetError(
            f"Network error while reaching OCR resources: {message}",
            pdf_path=pdf_path,
            original_error=original
        )

    if ('PDF' in name or 'PSEOF' in name or 'syntax' in message.lower()
            or isinstance(original, (FileNotFoundError, IsADirectoryError))):
        return PDFReadabilityError(
            f"The PDF file is invalid or corrupt: {message}",
            pdf_path=pdf_path,
            original_error=original
        )

    return RateExtractionError(
        f"PDF processing failed: {message}",
        pdf_path=pdf_path,
        details={'error_type': name}
    )
