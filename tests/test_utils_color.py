"""Tests for hex color parsing."""
import pytest

from posterframe.errors import ConfigParseError
from posterframe.utils.color import (
    WHITE,
    parse_hex_color,
    parse_hex_color_strict,
    to_hex_color,
)


class TestParseHexColorStrict:
    """Tests for strict color parsing."""

    def test_argb(self):
        """Test #AARRGGBB puts alpha first."""
        assert parse_hex_color_strict("#66000000") == (0, 0, 0, 0x66)
        assert parse_hex_color_strict("#80FF8000") == (255, 128, 0, 128)

    def test_rgb_is_opaque(self):
        """Test #RRGGBB is fully opaque."""
        assert parse_hex_color_strict("#336699") == (0x33, 0x66, 0x99, 255)

    def test_hash_optional(self):
        """Test the leading # may be omitted."""
        assert parse_hex_color_strict("ff0000") == (255, 0, 0, 255)

    @pytest.mark.parametrize("value", ["", "#123", "#1234567", "#GGGGGG", "red"])
    def test_invalid(self, value):
        """Test malformed strings raise ConfigParseError."""
        with pytest.raises(ConfigParseError):
            parse_hex_color_strict(value)

    def test_non_string(self):
        """Test non-strings raise ConfigParseError."""
        with pytest.raises(ConfigParseError):
            parse_hex_color_strict(0xFF0000)


class TestParseHexColor:
    """Tests for lenient color parsing."""

    def test_valid(self):
        """Test valid colors are parsed normally."""
        assert parse_hex_color("#00000000") == (0, 0, 0, 0)

    def test_invalid_falls_back_to_white(self, caplog):
        """Test bad input becomes opaque white with a warning."""
        with caplog.at_level("WARNING"):
            assert parse_hex_color("not-a-color") == WHITE
        assert "using white" in caplog.text


class TestToHexColor:
    """Tests for color formatting."""

    def test_format(self):
        """Test output is #AARRGGBB upper case."""
        assert to_hex_color((255, 128, 0, 102)) == "#66FF8000"

    def test_round_trip(self):
        """Test formatting and parsing agree."""
        assert parse_hex_color_strict(to_hex_color((1, 2, 3, 4))) == (1, 2, 3, 4)
