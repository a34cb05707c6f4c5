"""
CLI Context module for the rate extractor.

This module provides the shared context and decorators used across CLI commands,
preventing circular imports between cli.main and command modules.
"""

import os
import click

from rate_extraction.config import ExtractionConfig, load_config


class CLIContext:
    """Context object to share state between CLI commands."""

    def __init__(self):
        self.verbose = False
        self.quiet = False
        # Check for environment variable first
        self.config_file = os.environ.get('RATE_EXTRACTOR_CONFIG')
        self.config = None

    def get_config(self) -> ExtractionConfig:
        """Load the extraction settings once per invocation."""
        if self.config is None:
            self.config = load_config(self.config_file)
        return self.config


# Pass context between commands
pass_context = click.make_pass_decorator(CLIContext, ensure=True)
