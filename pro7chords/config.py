"""
Configuration module for Pro7Chords.

Handles chord formatting defaults, output file naming and the location of
the settings file.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional

from pro7chords.codec.attributes import Color, TextAttributes

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "PRO7CHORDS_HOME"


def get_default_config_dir() -> Path:
    """Get the settings directory, honouring PRO7CHORDS_HOME."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".pro7chords"


@dataclass
class ChordConfig:
    """Configuration for chord transposition and embedding."""
    current_key: str = "C"
    chord_scale: float = 0.7  # chord size relative to lyric size
    default_font_size: float = 117.0
    default_font_name: str = "Helvetica"
    outline_width: float = 2.0

    def text_attributes(self) -> TextAttributes:
        """Formatting used for slides whose payload has none to offer."""
        return TextAttributes(
            font_name=self.default_font_name,
            font_size=self.default_font_size,
            foreground=Color.WHITE,
            outline_color=Color.BLACK,
            outline_width=self.outline_width,
        )


@dataclass
class FileConfig:
    """Configuration for reading and writing files."""
    output_suffix: str = "_chords"
    slide_separator: str = "\n\n--- Next Slide ---\n\n"


@dataclass
class Config:
    """
    Main configuration class for Pro7Chords.

    Handles loading/saving settings as JSON in the config directory.
    """

    chords: ChordConfig = field(default_factory=ChordConfig)
    files: FileConfig = field(default_factory=FileConfig)

    _config_dir: Path = field(default_factory=get_default_config_dir)
    _config_file: Path = field(default=None)

    def __post_init__(self):
        """Initialize configuration paths."""
        self._config_file = self._config_dir / "config.json"

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def config_file(self) -> Path:
        return self._config_file

    def save(self) -> None:
        """Save configuration to disk."""
        self._config_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "chords": asdict(self.chords),
            "files": asdict(self.files),
        }

        with open(self._config_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        logger.debug(f"Saved configuration to {self._config_file}")

    @classmethod
    def load(cls, config_dir: Optional[Path] = None) -> "Config":
        """Load configuration from disk or create default."""
        config = cls() if config_dir is None else cls(_config_dir=Path(config_dir))

        if config._config_file.exists():
            try:
                with open(config._config_file, "r", encoding="utf-8") as f:
                    data = json.load(f)

                if "chords" in data:
                    config.chords = ChordConfig(**data["chords"])
                if "files" in data:
                    config.files = FileConfig(**data["files"])

            except (json.JSONDecodeError, TypeError, KeyError, AttributeError) as e:
                logger.warning(f"Could not load config file {config._config_file}: {e}")
                config.chords = ChordConfig()
                config.files = FileConfig()

        return config


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _config
    _config = Config()
    _config.save()
