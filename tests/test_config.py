"""
Tests for configuration handling.
"""

import json


class TestConfig:
    """Tests for the Config class."""

    def test_defaults(self, isolated_config):
        """Test default values."""
        from pro7chords.config import Config

        config = Config()
        assert config.config_dir == isolated_config
        assert config.chords.current_key == "C"
        assert config.chords.chord_scale == 0.7
        assert config.files.output_suffix == "_chords"
        assert config.files.slide_separator == "\n\n--- Next Slide ---\n\n"

    def test_save_and_load(self, isolated_config):
        """Test settings round trip through the JSON file."""
        from pro7chords.config import Config

        config = Config()
        config.chords.current_key = "Bb"
        config.chords.default_font_size = 90.0
        config.files.output_suffix = "-with-chords"
        config.save()

        loaded = Config.load()
        assert loaded.chords.current_key == "Bb"
        assert loaded.chords.default_font_size == 90.0
        assert loaded.files.output_suffix == "-with-chords"
        assert json.loads(config.config_file.read_text())["chords"]["current_key"] == "Bb"

    def test_corrupt_file_uses_defaults(self, isolated_config):
        """Test an unreadable config file falls back to defaults."""
        from pro7chords.config import Config

        isolated_config.mkdir(parents=True)
        (isolated_config / "config.json").write_text("{not json")

        config = Config.load()
        assert config.chords.current_key == "C"

    def test_unknown_keys_use_defaults(self, isolated_config):
        from pro7chords.config import Config

        isolated_config.mkdir(parents=True)
        (isolated_config / "config.json").write_text(json.dumps({"chords": {"colour": "red"}}))

        config = Config.load()
        assert config.chords.chord_scale == 0.7

    def test_text_attributes(self):
        """Test chord settings produce default slide formatting."""
        from pro7chords.codec import Color
        from pro7chords.config import ChordConfig

        attrs = ChordConfig(default_font_name="Arial", default_font_size=80.0, outline_width=0.0).text_attributes()
        assert attrs.font_name == "Arial"
        assert attrs.font_size == 80.0
        assert attrs.outline_width == 0.0
        assert attrs.foreground == Color.WHITE

    def test_global_config(self, isolated_config):
        """Test the global instance and reset."""
        from pro7chords.config import get_config, reset_config

        config = get_config()
        assert get_config() is config

        config.chords.current_key = "E"
        reset_config()
        assert get_config().chords.current_key == "C"
        assert (isolated_config / "config.json").exists()
