"""
Input validation utilities for the CLI interface.

This module provides validation functions for user inputs, file paths,
and data formats used throughout the CLI application.
"""

from pathlib import Path
from typing import Optional, List, Union
from urllib.parse import urlparse

import click

from cli.exceptions import ValidationError


def validate_file_path(file_path: Union[str, Path], must_exist: bool = True,
                       must_be_file: bool = True, extensions: Optional[List[str]] = None) -> Path:
    """
    Validate a file path.

    Args:
        file_path: File path to validate
        must_exist: Whether the file must exist
        must_be_file: Whether the path must be a file (not directory)
        extensions: List of allowed file extensions (e.g., ['.pdf', '.csv'])

    Returns:
        Validated Path object

    Raises:
        ValidationError: If file path is invalid
    """
    if not file_path:
        raise ValidationError("File path cannot be empty")

    path = Path(file_path).resolve()

    if must_exist and not path.exists():
        raise ValidationError(f"File does not exist: {path}")

    if must_exist and must_be_file and not path.is_file():
        raise ValidationError(f"Path is not a file: {path}")

    if extensions:
        # Normalize extensions to lowercase with dots
        normalized_extensions = [ext.lower() if ext.startswith('.') else f'.{ext.lower()}'
                                 for ext in extensions]

        if path.suffix.lower() not in normalized_extensions:
            raise ValidationError(
                f"File must have one of these extensions: {', '.join(normalized_extensions)}"
            )

    return path


def validate_directory_path(dir_path: Union[str, Path], must_exist: bool = True,
                            create_if_missing: bool = False) -> Path:
    """
    Validate a directory path.

    Raises:
        ValidationError: If directory path is invalid
    """
    if not dir_path:
        raise ValidationError("Directory path cannot be empty")

    path = Path(dir_path).resolve()

    if not path.exists():
        if create_if_missing:
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ValidationError(f"Cannot create directory {path}: {e}")
        elif must_exist:
            raise ValidationError(f"Directory does not exist: {path}")

    if path.exists() and not path.is_dir():
        raise ValidationError(f"Path is not a directory: {path}")

    return path


def validate_output_format(format_str: str) -> str:
    """
    Validate output format string.

    Raises:
        ValidationError: If format is not supported
    """
    if not format_str:
        raise ValidationError("Output format cannot be empty")

    format_str = format_str.lower().strip()
    valid_formats = ['table', 'json', 'csv']

    if format_str not in valid_formats:
        raise ValidationError(
            f"Invalid output format '{format_str}'. "
            f"Supported formats: {', '.join(valid_formats)}"
        )

    return format_str


def validate_endpoint_url(url: str) -> str:
    """
    Validate an HTTP(S) endpoint URL.

    Raises:
        ValidationError: If the URL is not http or https
    """
    if not url or not url.strip():
        raise ValidationError("Endpoint URL cannot be empty")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValidationError(f"Endpoint must be an http(s) URL: {url}")
    return url


class PDFPathType(click.ParamType):
    """Click parameter type for existing PDF files."""
    name = "pdf"

    def convert(self, value, param, ctx):
        if isinstance(value, Path):
            return value
        try:
            return validate_file_path(value, extensions=['.pdf'])
        except ValidationError as e:
            self.fail(str(e), param, ctx)


class OutputFormatType(click.ParamType):
    """Click parameter type for output formats."""
    name = "format"

    def convert(self, value, param, ctx):
        try:
            return validate_output_format(value)
        except ValidationError as e:
            self.fail(str(e), param, ctx)


class EndpointURLType(click.ParamType):
    """Click parameter type for normalization endpoints."""
    name = "url"

    def convert(self, value, param, ctx):
        try:
            return validate_endpoint_url(value)
        except ValidationError as e:
            self.fail(str(e), param, ctx)


# Create instances for use in Click commands
PDF_PATH = PDFPathType()
OUTPUT_FORMAT = OutputFormatType()
ENDPOINT_URL = EndpointURLType()
