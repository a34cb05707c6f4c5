"""
Configuration commands for the CLI interface.

This module implements configuration-related commands including:
- get: Show the effective value of one setting
- list: List all settings with their effective values
"""

import logging

import click

from cli.context import pass_context
from cli.formatters import print_info, format_table, format_json
from cli.exceptions import ValidationError
from cli.error_handlers import handle_errors
from rate_extraction.config import DEFAULT_SETTINGS, ENV_PREFIX


logger = logging.getLogger(__name__)


# Create config command group
@click.group(name='config')
def config_group():
    """Configuration inspection commands."""
    pass


@config_group.command()
@click.argument('key', type=str)
@click.option('--format', '-f', type=click.Choice(['value', 'json']), default='value',
              help='Output format')
@pass_context
@handle_errors({'operation': 'config get'})
def get(ctx, key, format):
    """
    Show the effective value of a setting.

    Examples:
        # Show the OCR language
        rate-extractor config get ocr_language
    """
    if key not in DEFAULT_SETTINGS:
        raise ValidationError(f"Unknown configuration key: {key}")

    value = ctx.get_config().to_dict()[key]
    if format == 'json':
        setting = DEFAULT_SETTINGS[key]
        click.echo(format_json({
            'key': key,
            'value': value,
            'data_type': setting.data_type,
            'category': setting.category,
            'description': setting.description,
            'environment_variable': f"{ENV_PREFIX}{key.upper()}"
        }))
    else:
        click.echo(str(value))


@config_group.command(name='list')
@click.option('--category', '-c', type=str, help='Filter by category')
@click.option('--format', '-f', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@pass_context
@handle_errors({'operation': 'config list'})
def list_settings(ctx, category, format):
    """
    List all settings with their effective values.

    Values come from the defaults, the --config-file JSON object and
    RATE_EXTRACTOR_* environment variables, in that order.

    Examples:
        # List the OCR settings
        rate-extractor config list --category ocr
    """
    effective = ctx.get_config().to_dict()
    settings = [s for s in DEFAULT_SETTINGS.values() if not category or s.category == category]

    if not settings:
        print_info(f"No settings found in category '{category}'.")
        return

    if format == 'json':
        click.echo(format_json({s.key: effective[s.key] for s in settings}))
        return

    rows = []
    for setting in settings:
        value = effective[setting.key]
        rows.append({
            'Key': setting.key,
            'Value': str(value),
            'Default': str(setting.get_typed_value()),
            'Category': setting.category,
            'Description': setting.description
        })
    click.echo(format_table(rows, tablefmt='simple'))
