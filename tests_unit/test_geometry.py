"""
Unit tests for token geometry and line grouping.
"""

from unittest.mock import Mock

from rate_extraction.geometry import (
    tokens_from_text_items,
    page_text_items,
    tokens_from_ocr_words,
    tokens_from_plain_text,
    group_lines,
    PLAIN_TEXT_LINE_SPACING
)
from rate_extraction.models import PositionedToken, OCRWord


class TestTokensFromTextItems:
    """Test cases for converting text content items."""

    def test_transform_gives_position(self):
        """Test that the translation part of the transform is the token origin."""
        tokens = tokens_from_text_items([
            {'str': '15/03/2024', 'transform': [1, 0, 0, 1, 72.5, 700], 'width': 48, 'height': 10}
        ])

        assert tokens == [PositionedToken('15/03/2024', 72.5, 700.0, 48.0, 10.0)]

    def test_missing_coordinates_default_to_zero(self):
        """Test items without transform or size."""
        tokens = tokens_from_text_items([{'str': 'Rata'}, {'text': 'n.'}])

        assert tokens[0] == PositionedToken('Rata', 0.0, 0.0, 0.0, 0.0)
        assert tokens[1].text == 'n.'

    def test_empty_strings_are_kept(self):
        """Test that empty runs survive conversion."""
        tokens = tokens_from_text_items([{'str': '', 'transform': [1, 0, 0, 1, 5, 5]}])
        assert len(tokens) == 1
        assert tokens[0].text == ''


class TestPageTextItems:
    """Test cases for reading pdfplumber words."""

    def test_baseline_is_flipped_to_pdf_space(self):
        """Test that pdfplumber top-based coordinates become bottom-based."""
        page = Mock()
        page.height = 842
        page.extract_words.return_value = [
            {'text': '2.461,33', 'x0': 400, 'x1': 440, 'top': 100, 'bottom': 110}
        ]

        items = page_text_items(page)

        assert items == [{
            'str': '2.461,33',
            'transform': [1, 0, 0, 1, 400.0, 732.0],
            'width': 40.0,
            'height': 10.0
        }]


class TestOCRTokens:
    """Test cases for OCR word conversion."""

    def test_y_is_flipped_box_centre(self):
        """Test that the token y is the image height minus the box centre."""
        words = [OCRWord('28/02/2025', left=100, top=50, width=80, height=20)]

        tokens = tokens_from_ocr_words(words, image_height=1000)

        assert tokens[0].x == 100.0
        assert tokens[0].y == 940.0
        assert tokens[0].height == 20.0

    def test_plain_text_lines_are_far_apart(self):
        """Test synthetic geometry for text without boxes."""
        tokens = tokens_from_plain_text("31/01/2024  1.000,00\n30/04/2024 1.000,00")

        assert [t.text for t in tokens] == ['31/01/2024', '1.000,00', '30/04/2024', '1.000,00']
        assert tokens[0].y - tokens[2].y == PLAIN_TEXT_LINE_SPACING
        assert tokens[0].x == 0.0
        assert tokens[1].x == 12.0

    def test_plain_text_empty(self):
        """Test that empty text gives no tokens."""
        assert tokens_from_plain_text('') == []
        assert tokens_from_plain_text(None) == []


class TestGroupLines:
    """Test cases for group_lines."""

    def test_groups_by_vertical_proximity(self):
        """Test that tokens within the tolerance share a line."""
        tokens = [
            PositionedToken('b', x=50, y=500.5),
            PositionedToken('a', x=10, y=500),
            PositionedToken('c', x=10, y=480),
        ]

        lines = group_lines(tokens, tolerance=2.0)

        assert len(lines) == 2
        assert [t.text for t in lines[0].tokens] == ['a', 'b']
        assert lines[0].text == 'a b'
        assert lines[1].text == 'c'

    def test_lines_ordered_top_first(self):
        """Test that higher y (top of page) comes first."""
        tokens = [PositionedToken('low', y=100), PositionedToken('high', y=700)]

        lines = group_lines(tokens)

        assert [line.text for line in lines] == ['high', 'low']

    def test_token_joins_first_matching_seed(self):
        """Test that lines are seeded by their first token and never merged."""
        tokens = [
            PositionedToken('one', x=0, y=100),
            PositionedToken('two', x=10, y=102),
            PositionedToken('three', x=20, y=104),
        ]

        lines = group_lines(tokens, tolerance=2.0)

        # 104 is 4 away from the seed 100, so it starts a new line
        assert [line.text for line in lines] == ['three', 'one two']

    def test_empty_input(self):
        """Test grouping nothing."""
        assert group_lines([]) == []
