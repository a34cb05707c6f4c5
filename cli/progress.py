"""
Progress indicator utilities for the CLI interface.

This module provides progress bars for long-running operations such
as page rasterization and OCR.
"""

from typing import Optional, Callable
from contextlib import contextmanager

import click


class ProgressBar:
    """
    A wrapper around Click's progress bar with additional features.
    """

    def __init__(self, length: Optional[int] = None, label: str = "Processing",
                 show_eta: bool = True, show_percent: bool = True,
                 show_pos: bool = False, item_show_func: Optional[Callable] = None):
        """
        Initialize progress bar.

        Args:
            length: Total number of steps
            label: Label to display with progress bar
            show_eta: Whether to show estimated time remaining
            show_percent: Whether to show percentage complete
            show_pos: Whether to show current position
            item_show_func: Function to format current item display
        """
        self.length = length
        self.label = label
        self.show_eta = show_eta
        self.show_percent = show_percent
        self.show_pos = show_pos
        self.item_show_func = item_show_func
        self._bar = None

    def __enter__(self):
        """Enter context manager."""
        self._bar = click.progressbar(
            length=self.length,
            label=self.label,
            show_eta=self.show_eta,
            show_percent=self.show_percent,
            show_pos=self.show_pos,
            item_show_func=self.item_show_func
        )
        return self._bar.__enter__()

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        if self._bar:
            return self._bar.__exit__(exc_type, exc_val, exc_tb)


class PercentProgress:
    """
    Adapts (percent, page, total) progress callbacks to a 0-100 click bar.

    Percentages only move the bar forward.
    """

    def __init__(self, bar):
        self.bar = bar
        self.position = 0
        self.current_page = None
        self.total_pages = None

    def __call__(self, percent: float, page: Optional[int] = None, total: Optional[int] = None):
        self.current_page = page
        self.total_pages = total
        target = max(0, min(100, int(percent)))
        if page is not None and total:
            self.bar.current_item = f"page {page}/{total}"
        if target > self.position:
            self.bar.update(target - self.position)
            self.position = target


@contextmanager
def progress_bar(length: Optional[int] = None, label: str = "Processing",
                 show_eta: bool = True, show_percent: bool = True,
                 show_pos: bool = False, item_show_func: Optional[Callable] = None):
    """
    Context manager for progress bar.

    Yields:
        Progress bar object
    """
    with ProgressBar(length, label, show_eta, show_percent, show_pos, item_show_func) as bar:
        yield bar


@contextmanager
def percent_progress(label: str = "OCR"):
    """
    Context manager yielding a (percent, page, total) callback backed by a progress bar.
    """
    with progress_bar(length=100, label=label, item_show_func=lambda item: item or "") as bar:
        yield PercentProgress(bar)

