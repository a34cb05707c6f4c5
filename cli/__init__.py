"""
CLI package for the rate extractor.

This package provides the command-line interface for extracting installment
schedules from Italian tax payment plan PDFs.
"""

from .version import __version__
