"""
Scoped access to PDF documents.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Union, Optional, Iterator

import pdfplumber

from .exceptions import PDFReadabilityError, classify_pdf_error


@contextmanager
def open_document(pdf_path: Union[str, Path],
                  logger: Optional[logging.Logger] = None) -> Iterator['pdfplumber.PDF']:
    """
    Open a PDF with pdfplumber and release it on every exit path.

    Open failures are raised as classified RateExtractionError subclasses.
    Failures while closing are logged at debug level and never propagate.

    Args:
        pdf_path: Path to the PDF file
        logger: Logger for release failures

    Yields:
        The open pdfplumber document

    Raises:
        PDFReadabilityError: If the file is missing, corrupt or password protected
    """
    logger = logger or logging.getLogger(__name__)
    path = Path(pdf_path)

    if not path.exists():
        raise PDFReadabilityError(f"PDF file not found: {path}", pdf_path=str(path))
    if not path.is_file():
        raise PDFReadabilityError(f"Path is not a file: {path}", pdf_path=str(path))

    try:
        pdf = pdfplumber.open(path)
    except Exception as e:
        raise classify_pdf_error(e, str(path)) from e

    try:
        yield pdf
    finally:
        try:
            pdf.close()
        except Exception as e:
            logger.debug(f"Ignoring error while releasing {path}: {e}")
