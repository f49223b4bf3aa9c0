import json
import logging
from dataclasses import dataclass, asdict, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = 'config.json'
DEFAULT_DATA_DIR = Path.home() / '.memopad'

MB = 1024 * 1024


@dataclass
class EditorConfig:
    """
    Settings for one editor process.
    Loaded once at startup and handed to the session, the store and the app factory.
    """
    # Debounce delays (seconds)
    save_delay: float = 0.5
    linkify_delay: float = 2.0
    rebind_delay: float = 0.2

    # Image policy
    max_image_dimension: int = 1600
    jpeg_quality: int = 85
    paste_size_limit: int = 5 * MB
    drop_size_limit: int = 10 * MB
    min_image_width: int = 50
    surface_width: int = 800  # available width for resized images

    # Storage / runtime
    data_dir: str = str(DEFAULT_DATA_DIR)
    log_dir: Optional[str] = None
    history_limit: int = 100
    host: str = '127.0.0.1'
    port: int = 8000
    debug: bool = False
    # Per-component log levels, e.g. {"session": "DEBUG", "preview": "INFO"}
    log_levels: Dict[str, str] = field(default_factory=dict)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def log_path(self) -> Path:
        return Path(self.log_dir) if self.log_dir else self.data_path / 'logs'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EditorConfig':
        """Build a config from a mapping, ignoring keys this version does not know."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {unknown}")
        return cls(**{k: v for k, v in data.items() if k in known})


def load_config(config_path: Optional[Path] = None) -> EditorConfig:
    """Load editor configuration, falling back to defaults when the file is missing or unreadable."""
    if config_path is None:
        config_path = DEFAULT_DATA_DIR / CONFIG_FILE_NAME
    config_path = Path(config_path)

    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be an object")
            config = EditorConfig.from_dict(data)
            logger.info(f"Configuration loaded from {config_path}")
            return config
        except Exception as e:
            logger.error(f"Failed to load config {config_path}: {e}")

    logger.debug(f"Using default configuration (no usable file at {config_path})")
    return EditorConfig()


def save_config(config: EditorConfig, config_path: Path) -> bool:
    """Save editor configuration. Returns False (and logs) on failure."""
    try:
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2)
        logger.info("Configuration saved successfully")
        return True
    except Exception as e:
        logger.error(f"Failed to save config: {e}")
        return False
