"""
CLI command modules for the rate extractor.

This package contains the command implementations organized by functional area:
- extract_commands: Schedule extraction, PDF probing and schedule repair
- ocr_commands: Local OCR and remote normalization of scanned PDFs
- config_commands: Inspection of the effective configuration
"""

# Import command modules for easy access
from . import (
    extract_commands,
    ocr_commands,
    config_commands
)

__all__ = [
    'extract_commands',
    'ocr_commands',
    'config_commands'
]
