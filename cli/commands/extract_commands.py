"""
Schedule extraction commands for the CLI interface.

This module implements the commands that work on installment schedules:
- extract: Extract the schedule of a single PDF
- probe: Report whether a PDF has a text layer and which format it looks like
- repair: Fill a single missing installment in a schedule saved as CSV
"""

import csv
import dataclasses
import logging
import math
from pathlib import Path

import click

from cli.context import pass_context
from cli.formatters import (
    print_success, print_warning, print_info,
    format_schedule, format_json, format_table, write_csv, display_summary
)
from cli.exceptions import CLIError, ValidationError
from cli.error_handlers import handle_errors
from cli.validators import PDF_PATH, OUTPUT_FORMAT, validate_file_path
from rate_extraction.amounts import euros_to_number
from rate_extraction.format_detection import detect_pdf_format, is_format_reliable
from rate_extraction.models import Rata
from rate_extraction.pipeline import (
    ScheduleExtractionPipeline, PROFILE_ADR, PROFILE_PAGOPA, PHASE_OCR
)
from rate_extraction.repair import repair_schedule
from rate_extraction.dates import NUMERIC_DATE_PATTERN, normalize_date
from rate_extraction.text_layer import has_text_layer, extract_page_texts


logger = logging.getLogger(__name__)


@click.command()
@click.argument('pdf_path', type=PDF_PATH)
@click.option('--profile', type=click.Choice([PROFILE_ADR, PROFILE_PAGOPA]), default=PROFILE_ADR,
              show_default=True, help='Document profile (ADR rate table or PagoPA plan)')
@click.option('--format', '-f', 'output_format', type=OUTPUT_FORMAT, default='table',
              show_default=True, help='Output format: table, json or csv')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the schedule to a file instead of stdout')
@click.option('--expected', type=click.IntRange(min=2), default=None,
              help='Expected number of installments')
@click.option('--no-ocr', is_flag=True, help='Use the text layer only')
@click.option('--no-repair', is_flag=True, help='Do not fill a missing installment')
@pass_context
@handle_errors({'operation': 'extract'})
def extract(ctx, pdf_path, profile, output_format, output, expected, no_ocr, no_repair):
    """
    Extract the installment schedule from a PDF.

    Examples:
        # Print the schedule as a table
        rate-extractor extract piano_rate.pdf

        # PagoPA plan saved as JSON
        rate-extractor extract avviso.pdf --profile pagopa -f json -o rate.json
    """
    config = ctx.get_config()
    overrides = {}
    if expected is not None:
        overrides['expected_installments'] = expected
        overrides['min_expected'] = expected
    if no_ocr:
        overrides['ocr_enabled'] = False
    if no_repair:
        overrides['repair_enabled'] = False
    if overrides:
        config = dataclasses.replace(config, **overrides)

    # Only the table view shares stdout with status messages
    chatty = not ctx.quiet and (output is not None or output_format == 'table')

    def on_phase(phase):
        if phase == PHASE_OCR and chatty:
            print_info("Text layer insufficient, running OCR...")

    def on_progress(percent, page, total):
        logger.debug(f"OCR progress {percent:.0f}% (page {page}/{total})")

    pipeline = ScheduleExtractionPipeline(config)
    result = pipeline.extract(pdf_path, profile, on_phase=on_phase, on_progress=on_progress)
    rows = [row.to_dict() for row in result.rows]

    if output is not None:
        _write_schedule(rows, output, output_format)
        if not ctx.quiet:
            print_success(f"Wrote {len(rows)} installments to {output}")
    else:
        click.echo(format_schedule(rows, output_format))

    if chatty:
        for duplicate in result.duplicates:
            print_warning(
                f"Duplicate date {duplicate.scadenza}: kept {duplicate.replacement} "
                f"over {duplicate.previous}"
            )
        for diagnostic in result.diagnostics:
            print_warning(diagnostic)
        display_summary("Extraction Summary", {
            'method': result.method,
            'installments': len(rows),
            'total_amount': result.total_amount,
            'repaired': result.repaired
        })


def _write_schedule(rows, output: Path, output_format: str) -> None:
    try:
        if output_format == 'csv':
            write_csv(rows, output, ['scadenza', 'totaleEuro', 'year'])
        else:
            output.write_text(format_schedule(rows, output_format) + '\n', encoding='utf-8')
    except OSError as e:
        raise CLIError(f"Cannot write output file {output}: {e}")


@click.command()
@click.argument('pdf_path', type=PDF_PATH)
@click.option('--format', '-f', 'output_format', type=click.Choice(['table', 'json']),
              default='table', show_default=True, help='Output format')
@pass_context
@handle_errors({'operation': 'probe'})
def probe(ctx, pdf_path, output_format):
    """
    Check whether a PDF has a usable text layer and guess its format.

    Scanned documents without a text layer need OCR.
    """
    config = ctx.get_config()
    text_layer = has_text_layer(pdf_path, config.probe_pages, config.probe_min_chars)

    report = {'pdf_path': str(pdf_path), 'text_layer': text_layer}
    if text_layer:
        detection = detect_pdf_format(extract_page_texts(pdf_path, config.probe_pages))
        report['format'] = detection.format
        report['confidence'] = round(detection.confidence, 2)
        report['reliable'] = is_format_reliable(detection)
        report['indicators'] = detection.indicators

    if output_format == 'json':
        click.echo(format_json(report))
        return

    display_summary(f"PDF Probe: {pdf_path.name}", {
        key: value for key, value in report.items() if key != 'indicators'
    })
    if report.get('indicators'):
        click.echo(format_table([{'indicator': name} for name in report['indicators']]))
    if not text_layer:
        print_info("No text layer found: extraction will rely on OCR")


def read_schedule_csv(csv_path: Path):
    """
    Read a schedule from CSV with scadenza and totaleEuro columns.

    Amounts may be plain numbers (1234.56) or Italian formatted (1.234,56).
    """
    rows = []
    with open(csv_path, newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or 'scadenza' not in reader.fieldnames:
            raise ValidationError(f"CSV must have a 'scadenza' column: {csv_path}")

        for line_number, record in enumerate(reader, start=2):
            match = NUMERIC_DATE_PATTERN.fullmatch((record.get('scadenza') or '').strip())
            if not match:
                raise ValidationError(f"Invalid date on line {line_number}: {record.get('scadenza')}")
            amount_text = (record.get('totaleEuro') or record.get('amount') or '').strip()
            amount = _parse_amount(amount_text)
            if math.isnan(amount):
                raise ValidationError(f"Invalid amount on line {line_number}: {amount_text}")
            rata = Rata.from_dict({
                'scadenza': normalize_date(*match.groups()),
                'totaleEuro': amount
            })
            try:
                rata.due_date
            except ValueError:
                raise ValidationError(f"Invalid date on line {line_number}: {record.get('scadenza')}")
            rows.append(rata)
    return rows


def _parse_amount(text: str) -> float:
    if ',' in text:
        return euros_to_number(text)
    try:
        return float(text)
    except ValueError:
        return math.nan


@click.command()
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--expected', type=click.IntRange(min=2), default=None,
              help='Expected number of installments')
@click.option('--format', '-f', 'output_format', type=OUTPUT_FORMAT, default='table',
              show_default=True, help='Output format: table, json or csv')
@pass_context
@handle_errors({'operation': 'repair'})
def repair(ctx, csv_path, expected, output_format):
    """
    Insert the single missing installment of a schedule saved as CSV.

    Only a schedule with exactly one installment fewer than expected is changed.
    """
    validate_file_path(csv_path, extensions=['.csv'])
    expected = expected or ctx.get_config().expected_installments
    rows = read_schedule_csv(csv_path)

    repaired = repair_schedule(rows, expected)
    if output_format == 'table':
        click.echo(format_table([row.to_dict() for row in repaired],
                                ['scadenza', 'totaleEuro', 'year', 'synthetic']))
    else:
        click.echo(format_schedule([row.to_dict() for row in repaired], output_format))

    if output_format == 'table' and not ctx.quiet:
        added = [row.scadenza for row in repaired if row.synthetic]
        if added:
            print_success(f"Inserted missing installment {', '.join(added)}")
        else:
            print_info(f"No repair applied ({len(rows)} rows, {expected} expected)")
