"""Tests for document number formatting and parsing."""

import pytest

from lorrybook.client.numbering import parse_manual_number
from lorrybook.core.modules.numbering.models import format_document_number
from lorrybook.errors import ValidationError


class TestFormatDocumentNumber:
    """Tests for prefix concatenation."""

    def test_prefix_is_prepended(self):
        assert format_document_number("INV", 1007) == "INV1007"

    def test_empty_prefix_gives_bare_number(self):
        assert format_document_number("", 1007) == "1007"

    def test_no_padding_is_added(self):
        assert format_document_number("LR", 7) == "LR7"


class TestParseManualNumber:
    """Tests for reading user-typed document numbers."""

    @pytest.mark.parametrize(
        ("raw", "prefix", "expected"),
        [
            ("LR5012", "LR", 5012),
            ("lr5012", "LR", 5012),
            ("  LR 5012 ", "LR", 5012),
            ("5012", "LR", 5012),
            ("1007", "", 1007),
        ],
    )
    def test_valid_input(self, raw, prefix, expected):
        """Test that the prefix is optional and stripped before parsing."""
        assert parse_manual_number(raw, prefix) == expected

    @pytest.mark.parametrize("raw", ["", "LR", "LRabc", "INV1007", "0", "-5", "12.5", "５０"])
    def test_invalid_input_raises(self, raw):
        """Test that anything but a positive ASCII integer is rejected."""
        with pytest.raises(ValidationError, match="valid number"):
            parse_manual_number(raw, "LR")


class TestAllocatorFormatting:
    """Tests for formatting through the allocator's cached prefixes."""

    def test_without_config_uses_bare_number(self, allocator):
        """Test that an uninitialized allocator formats without a prefix."""
        assert allocator.format_number("invoice", 1007) == "1007"

    def test_parse_without_config_uses_default_prefix(self, allocator):
        """Test that the default lorry receipt prefix is recognised before initialization."""
        assert allocator.parse_manual_number("consignment", "LR5100") == 5100

    @pytest.mark.asyncio
    async def test_uses_cached_prefix(self, allocator):
        await allocator.initialize()

        assert allocator.format_number("invoice", 1007) == "INV1007"
        assert allocator.format_number("consignment", 5001) == "LR5001"

    @pytest.mark.asyncio
    async def test_empty_cached_prefix(self, allocator, backend, config_factory):
        """Test that a configuration without prefix formats the bare number."""
        backend.configs["invoice"] = config_factory("invoice", 1001, prefix="")
        await allocator.initialize()

        assert allocator.format_number("invoice", 1007) == "1007"
