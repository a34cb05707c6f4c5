"""
Output formatting utilities for the CLI interface.

This module provides functions for formatting output, setting up logging,
and displaying schedules in various formats (table, CSV, JSON).
"""

import io
import logging
import json
import csv
from typing import List, Dict, Any, Optional, Union, TextIO
from pathlib import Path

import click
from tabulate import tabulate

from rate_extraction.amounts import format_euro


SCHEDULE_HEADERS = ['scadenza', 'totaleEuro', 'year']


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Setup logging configuration for the CLI application.

    Args:
        verbose: Enable verbose (DEBUG) logging
        quiet: Suppress non-essential output (WARNING+ only)
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    # Configure root logger
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Suppress verbose output from third-party libraries unless in debug mode
    if not verbose:
        for name in ('pdfminer', 'PIL', 'urllib3', 'requests'):
            logging.getLogger(name).setLevel(logging.WARNING)


def format_boolean(value: Optional[bool]) -> str:
    """
    Format a boolean value for display.

    Args:
        value: Boolean value to format

    Returns:
        "Yes", "No", or "N/A"
    """
    if value is None:
        return "N/A"
    return "Yes" if value else "No"


def truncate_text(text: Optional[str], max_length: int = 50) -> str:
    """Truncate text to a maximum length with ellipsis."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def format_table(data: List[Dict[str, Any]], headers: Optional[List[str]] = None,
                 tablefmt: str = "grid") -> str:
    """
    Format data as a table using tabulate.

    Args:
        data: List of dictionaries containing row data
        headers: Optional list of column headers
        tablefmt: Table format style

    Returns:
        Formatted table string
    """
    if not data:
        return "No data to display."

    if headers is None:
        headers = list(data[0].keys())

    rows = []
    for row in data:
        formatted_row = []
        for header in headers:
            value = row.get(header, "")
            if isinstance(value, float) and header in ('totaleEuro', 'amount', 'previous', 'replacement'):
                formatted_row.append(format_euro(value))
            elif isinstance(value, bool):
                formatted_row.append(format_boolean(value))
            elif isinstance(value, str) and len(value) > 50:
                formatted_row.append(truncate_text(value))
            else:
                formatted_row.append(str(value) if value is not None else "")
        rows.append(formatted_row)

    return tabulate(rows, headers=headers, tablefmt=tablefmt)


def format_json(data: Any, indent: int = 2) -> str:
    """
    Format data as JSON string.

    Args:
        data: Data to format as JSON
        indent: JSON indentation level

    Returns:
        Formatted JSON string
    """
    def json_serializer(obj):
        """Custom JSON serializer for special types."""
        if isinstance(obj, Path):
            return str(obj)
        elif hasattr(obj, 'to_dict'):
            return obj.to_dict()
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    return json.dumps(data, indent=indent, default=json_serializer, ensure_ascii=False)


def write_csv(data: List[Dict[str, Any]], output_file: Union[str, Path, TextIO],
              headers: Optional[List[str]] = None) -> None:
    """
    Write data to a CSV file.

    Args:
        data: List of dictionaries containing row data
        output_file: Output file path or file object
        headers: Optional list of column headers
    """
    if headers is None:
        headers = list(data[0].keys()) if data else list(SCHEDULE_HEADERS)

    if isinstance(output_file, (str, Path)):
        with open(output_file, 'w', newline='', encoding='utf-8') as f:
            _write_csv_to_file(data, f, headers)
    else:
        _write_csv_to_file(data, output_file, headers)


def _write_csv_to_file(data: List[Dict[str, Any]], file_obj: TextIO, headers: List[str]) -> None:
    writer = csv.DictWriter(file_obj, fieldnames=headers, extrasaction='ignore')
    writer.writeheader()
    for row in data:
        writer.writerow({header: "" if row.get(header) is None else row.get(header) for header in headers})


def format_csv(data: List[Dict[str, Any]], headers: Optional[List[str]] = None) -> str:
    """Format data as a CSV string."""
    output = io.StringIO()
    write_csv(data, output, headers)
    return output.getvalue()


def format_schedule(rows: List[Dict[str, Any]], output_format: str = 'table') -> str:
    """
    Format installment rows ({scadenza, totaleEuro, year}) for output.

    Args:
        rows: Installment dictionaries
        output_format: 'table', 'json' or 'csv'
    """
    if output_format == 'json':
        return format_json(rows)
    elif output_format == 'csv':
        return format_csv(rows, SCHEDULE_HEADERS)
    elif output_format == 'table':
        headers = list(SCHEDULE_HEADERS)
        if any(row.get('synthetic') for row in rows):
            headers.append('synthetic')
        return format_table(rows, headers)
    raise ValueError(f"Unsupported format: {output_format}")


def print_success(message: str) -> None:
    """Print a success message with green checkmark."""
    click.echo(click.style(f"✓ {message}", fg='green'))


def print_warning(message: str) -> None:
    """Print a warning message with yellow warning symbol."""
    click.echo(click.style(f"⚠ Warning: {message}", fg='yellow'))


def print_error(message: str) -> None:
    """Print an error message with red X symbol."""
    click.echo(click.style(f"✗ Error: {message}", fg='red'), err=True)


def print_info(message: str) -> None:
    """Print an info message with blue info symbol."""
    click.echo(click.style(f"ℹ {message}", fg='blue'))


def display_summary(title: str, stats: Dict[str, Any]) -> None:
    """
    Display a formatted summary with title and statistics.

    Args:
        title: Summary title
        stats: Dictionary of statistics to display
    """
    click.echo(f"\n{title}")
    click.echo("=" * len(title))

    for key, value in stats.items():
        formatted_key = key.replace('_', ' ').title()
        if isinstance(value, float) and 'amount' in key.lower():
            formatted_value = format_euro(value)
        elif isinstance(value, bool):
            formatted_value = format_boolean(value)
        else:
            formatted_value = str(value)
        click.echo(f"  {formatted_key}: {formatted_value}")
