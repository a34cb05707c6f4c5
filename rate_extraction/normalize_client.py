"""
Client for the remote OCR normalization service.

The service accepts a PDF as multipart field ``file`` and answers with a
text-searchable PDF that keeps the original page layout, so the result can go
through the vector text pipeline again.
"""

import logging
import re
from pathlib import Path
from typing import Union, Optional

import requests

from .exceptions import PDFReadabilityError, OCRAssetError, OCRNormalizationError


DEFAULT_TIMEOUT = 120

logger = logging.getLogger(__name__)


def searchable_name(pdf_path: Union[str, Path]) -> str:
    """Name of the normalized copy: report.pdf -> report_searchable.pdf."""
    name = Path(pdf_path).name
    if re.search(r'\.pdf$', name, re.IGNORECASE):
        return re.sub(r'\.pdf$', '_searchable.pdf', name, flags=re.IGNORECASE)
    return f"{name}_searchable.pdf"


def normalize_pdf_via_api(pdf_path: Union[str, Path], endpoint_url: str,
                          timeout: float = DEFAULT_TIMEOUT,
                          output_dir: Optional[Union[str, Path]] = None,
                          session: Optional[requests.Session] = None) -> Path:
    """
    Send a PDF to the normalization service and save the searchable copy.

    Args:
        pdf_path: PDF to normalize
        endpoint_url: Service URL
        timeout: Request timeout in seconds
        output_dir: Where to write the result (defaults to the input folder)
        session: Optional requests session

    Returns:
        Path of the written ``<stem>_searchable.pdf``

    Raises:
        PDFReadabilityError: If the input file does not exist
        OCRAssetError: If the service cannot be reached
        OCRNormalizationError: If the service rejects the document or the copy cannot be saved
    """
    path = Path(pdf_path)
    if not path.is_file():
        raise PDFReadabilityError(f"PDF file not found: {path}", pdf_path=str(path))
    if not endpoint_url:
        raise OCRNormalizationError("No normalization endpoint configured", pdf_path=str(path))

    http = session or requests
    logger.info(f"Normalizing {path.name} via {endpoint_url}")

    try:
        with open(path, 'rb') as fh:
            response = http.post(
                endpoint_url,
                files={'file': (path.name, fh, 'application/pdf')},
                timeout=timeout
            )
    except requests.exceptions.RequestException as e:
        raise OCRAssetError(
            f"Network error while contacting the normalization service: {e}",
            pdf_path=str(path),
            original_error=e
        ) from e

    if not response.ok:
        error_text = response.text
        logger.error(f"Normalization failed ({response.status_code}): {error_text[:200]}")
        raise OCRNormalizationError(
            f"OCR normalization failed: {error_text}",
            pdf_path=str(path),
            status_code=response.status_code,
            response_text=error_text
        )

    content_type = response.headers.get('Content-Type', '')
    if 'application/pdf' not in content_type.lower():
        raise OCRNormalizationError(
            f"Normalization service returned unexpected content type '{content_type}'",
            pdf_path=str(path),
            status_code=response.status_code,
            response_text=response.text
        )

    target_dir = Path(output_dir) if output_dir else path.parent
    target = target_dir / searchable_name(path)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(response.content)
    except OSError as e:
        logger.error(f"Cannot save normalized copy to {target}: {e}")
        raise OCRNormalizationError(
            f"Cannot save normalized copy to {target}: {e}",
            pdf_path=str(path),
            status_code=response.status_code
        ) from e

    logger.info(f"Normalization completed: {target} ({len(response.content)} bytes)")
    return target
