# tests/test_utils.py
"""Unit tests for utility functions in the `twinpane.utils` module.

Covers configuration merging and loading, color conversion, human readable
sizes and the decoding of shell command output.
"""

from pathlib import Path

import pytest

from twinpane.utils import utils


def test_deep_merge() -> None:
    """Verify that `deep_merge` correctly merges nested dictionaries.

    This test ensures:
    - Existing values are preserved if not overridden.
    - Nested dictionaries are merged recursively.
    - Conflicting keys are overridden by values from the second dictionary.
    """
    base = {"a": 1, "b": {"x": 10, "y": 20}}
    override = {"b": {"y": 99, "z": 100}, "c": 3}
    result = utils.deep_merge(base, override)
    expected = {"a": 1, "b": {"x": 10, "y": 99, "z": 100}, "c": 3}
    assert result == expected
    assert base == {"a": 1, "b": {"x": 10, "y": 20}}


def test_hex_to_xterm_valid_color() -> None:
    """Ensure `hex_to_xterm` returns the correct xterm color code for valid hex values.

    Examples tested:
    - White (`#ffffff`) should map to 231.
    - Black (`000000`) should map to 16.
    """
    assert utils.hex_to_xterm("#ffffff") == 231
    assert utils.hex_to_xterm("000000") == 16


def test_hex_to_xterm_invalid_color() -> None:
    """Verify that `hex_to_xterm` falls back to 255 for invalid hex strings."""
    assert utils.hex_to_xterm("#zzz") == 255
    assert utils.hex_to_xterm("12") == 255
    assert utils.hex_to_xterm("#gggggg") == 255


@pytest.mark.parametrize(
    "size, expected",
    [
        (None, ""),
        (0, "0"),
        (1023, "1023"),
        (1536, "1.5K"),
        (20 * 1024 * 1024, "20M"),
        (3 * 1024**4, "3.0T"),
    ],
)
def test_format_size(size, expected: str) -> None:
    assert utils.format_size(size) == expected


def test_decode_output_utf8_and_fallback() -> None:
    assert utils.decode_output(b"") == ""
    assert utils.decode_output("naïve\n".encode("utf-8")) == "naïve\n"

    # Not valid UTF-8; decoding must still produce text.
    decoded = utils.decode_output("Grüße aus Köln, schöne Grüße".encode("latin-1"))
    assert isinstance(decoded, str)
    assert "aus K" in decoded


def test_load_config_merges_explicit_file(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        '[panels]\nshow_hidden = false\n\n[commands]\nviewer = "bat"\n', encoding="utf-8"
    )

    config = utils.load_config(config_file)

    assert config["panels"]["show_hidden"] is False
    assert config["panels"]["activate_file"] == "view"
    assert config["commands"]["viewer"] == "bat"
    assert config["keybindings"]["copy"] == ["f5"]


def test_load_config_survives_broken_file(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[panels\nshow_hidden = ", encoding="utf-8")

    config = utils.load_config(config_file)

    assert config == utils.deep_merge({}, utils.DEFAULT_CONFIG)


def test_load_config_does_not_touch_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[panels]\nleft = '/srv'\n", encoding="utf-8")

    utils.load_config(config_file)

    assert utils.DEFAULT_CONFIG["panels"]["left"] == ""


def test_ensure_user_config_exists(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(utils.Path, "home", classmethod(lambda cls: tmp_path))

    utils.ensure_user_config_exists()

    config_dir = tmp_path / ".config" / "twinpane"
    assert (config_dir / ".env").read_text(encoding="utf-8") == utils.ENV_TEMPLATE
    assert (config_dir / "config.toml").exists()
