"""
Main CLI entry point for the rate extractor.

This module provides the main command-line interface with global options
and registers the extraction, OCR and configuration commands.
"""

import sys
import logging
import platform

import click

from cli.context import CLIContext, pass_context
from cli.version import get_version, get_version_info
from cli.commands import extract_commands, ocr_commands, config_commands
from cli.exceptions import CLIError
from cli.formatters import setup_logging


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-essential output')
@click.option('--config-file', type=click.Path(exists=True, dir_okay=False),
              help='JSON file with extraction settings')
@click.version_option(version=get_version(), prog_name="rate-extractor")
@click.pass_context
def cli(ctx, verbose, quiet, config_file):
    """
    Rate Extractor - installment schedules from Italian tax PDFs

    Reads ADR rate tables, PagoPA payment plans and F24 amortisation plans,
    digital or scanned, and prints the list of due dates and amounts.

    Examples:
        # Extract a schedule
        rate-extractor extract piano_rate.pdf

        # Check whether a scanned PDF needs OCR
        rate-extractor probe scansione.pdf

        # Fill the missing installment of a saved schedule
        rate-extractor repair rate.csv
    """
    # Initialize context
    cli_ctx = CLIContext()
    cli_ctx.verbose = verbose
    cli_ctx.quiet = quiet
    if config_file:
        cli_ctx.config_file = config_file
    ctx.obj = cli_ctx

    # Setup logging
    setup_logging(verbose, quiet)


# Register commands
cli.add_command(extract_commands.extract)
cli.add_command(extract_commands.probe)
cli.add_command(extract_commands.repair)
cli.add_command(ocr_commands.ocr)
cli.add_command(ocr_commands.normalize)
cli.add_command(config_commands.config_group)


@cli.command()
@click.option('--detailed', is_flag=True, help='Show detailed version and dependency information')
@pass_context
def version(ctx, detailed):
    """Display version and system information."""
    version_info = get_version_info()
    app_version = version_info['version']
    click.echo(f"Rate Extractor v{app_version}")

    if not detailed:
        return

    system_info = {
        'Application Version': app_version,
        'Base Version': version_info['base_version'],
        'Python Version': version_info['python_version'],
        'Platform': platform.platform(),
        'Python Executable': sys.executable
    }
    if version_info['git_available']:
        system_info['Git Commit'] = version_info['commit_hash']
    else:
        system_info['Git Status'] = 'Not available'

    for name, distribution in (('pdfplumber', 'pdfplumber'), ('pytesseract', 'pytesseract'),
                               ('Pillow', 'Pillow'), ('requests', 'requests')):
        system_info[f'{name} Version'] = _distribution_version(distribution)

    click.echo("\nDetailed System Information:")
    click.echo("=" * 40)
    for key, value in system_info.items():
        click.echo(f"{key:20}: {value}")


def _distribution_version(name: str) -> str:
    from importlib import metadata
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return 'not installed'


def main():
    """Main entry point for the CLI application."""
    try:
        cli()
    except CLIError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(130)
    except Exception as e:
        logger = logging.getLogger(__name__)
        logger.exception("Unexpected error occurred")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
