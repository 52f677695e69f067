"""Tests for the Tailwind color helpers."""

import pytest

from react_modifier.utils.colors import (
    COLOR_MAP,
    color_to_hex,
    generate_color_scale,
    generate_shade,
    hsl_to_hex,
)


class TestColorToHex:
    def test_known_name(self):
        assert color_to_hex("green") == "#10b981"

    def test_case_and_whitespace_ignored(self):
        assert color_to_hex("  Purple ") == COLOR_MAP["purple"]

    def test_grey_alias(self):
        assert color_to_hex("grey") == color_to_hex("gray")

    def test_hex_passes_through(self):
        assert color_to_hex("#ABCDEF") == "#abcdef"

    def test_unknown_name_defaults_to_blue(self):
        assert color_to_hex("chartreuse") == "#3b82f6"

    def test_hsl_converted(self):
        assert color_to_hex("hsl(0, 100%, 50%)") == "#ff0000"

    @pytest.mark.parametrize("value", ["#12345678", "#1234", "#12345", "#ggg"])
    def test_malformed_hex_raises(self, value):
        with pytest.raises(ValueError, match="Not a hex color"):
            color_to_hex(value)


class TestHslToHex:
    @pytest.mark.parametrize("hsl,expected", [
        ("hsl(0, 100%, 50%)", "#ff0000"),
        ("hsl(120 100% 25%)", "#008000"),
        ("hsl(240, 100%, 50%)", "#0000ff"),
        ("hsl(0, 0%, 100%)", "#ffffff"),
        ("HSL(360, 100%, 50%)", "#ff0000"),
    ])
    def test_conversion(self, hsl, expected):
        assert hsl_to_hex(hsl) == expected

    def test_css_variable_rejected(self):
        with pytest.raises(ValueError, match="Not an hsl color"):
            hsl_to_hex("hsl(var(--primary))")


class TestGenerateShade:
    def test_darker_shade(self):
        # 600 scales each channel by 0.85
        assert generate_shade("#10b981", 600) == "#0e9d6e"

    def test_lighter_shades_clamp_at_white(self):
        assert generate_shade("#ffffff", 50) == "#ffffff"

    def test_black_stays_black_when_lightened(self):
        assert generate_shade("#000000", 100) == "#000000"

    def test_short_hex_expanded(self):
        assert generate_shade("#fff", 900) == generate_shade("#ffffff", 900)

    def test_invalid_hex_raises(self):
        with pytest.raises(ValueError, match="Not a hex color"):
            generate_shade("#zzzzzz", 500)


class TestGenerateColorScale:
    def test_base_is_500(self):
        scale = generate_color_scale("#10B981")
        assert scale["500"] == "#10b981"
        assert list(scale) == ["50", "100", "200", "300", "400", "500", "600", "700", "800", "900"]

    def test_ramp_darkens_monotonically(self):
        scale = generate_color_scale("#3b82f6")
        reds = [int(scale[step][1:3], 16) for step in ("500", "600", "700", "800", "900")]
        assert reds == sorted(reds, reverse=True)
