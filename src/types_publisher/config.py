from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel

CONFIG_DIR = Path.home() / ".types-publisher"
CONFIG_FILE = CONFIG_DIR / "config"

NPM_REGISTRY = "https://registry.npmjs.org/"
NPM_API = "https://api.npmjs.org"


def read_config(config_file: Path = CONFIG_FILE) -> Dict[str, str]:
    """read KEY=value lines from the config file."""
    config: Dict[str, str] = {}
    if not config_file.exists():
        return config

    try:
        with open(config_file, "r") as f:
            for line in f:
                line = line.strip()
                if "=" in line and not line.startswith("#"):
                    key, value = line.split("=", 1)
                    config[key] = value
    except (IOError, PermissionError, OSError):
        # unreadable config is the same as no config
        return {}
    return config


def get_config_value(key: str, config_file: Path = CONFIG_FILE) -> Optional[str]:
    return read_config(config_file).get(key)


def set_config_value(key: str, value: str, config_file: Path = CONFIG_FILE):
    """set a value in the config file, preserving other config values."""
    config_file.parent.mkdir(parents=True, exist_ok=True)

    config = read_config(config_file)
    config[key] = value

    try:
        with open(config_file, "w") as f:
            for k, v in config.items():
                f.write(f"{k}={v}\n")
    except (IOError, PermissionError, OSError) as e:
        raise RuntimeError(f"failed to write config file: {e}") from e


class Settings(BaseModel):
    """locations of the upstream registry and of the local working area."""
    npm_registry: str = NPM_REGISTRY
    npm_api: str = NPM_API
    cache_file: Path = Path("cache") / "npmInfo.json"
    output_path: Path = Path("output")
    data_dir: Path = Path("data")

    @classmethod
    def load(cls, config_file: Path = CONFIG_FILE) -> "Settings":
        """build settings, applying TYPES_PUBLISHER_* overrides from the config file."""
        config = read_config(config_file)
        overrides = {}
        for field_name in cls.model_fields:
            value = config.get(f"TYPES_PUBLISHER_{field_name.upper()}")
            if value:
                overrides[field_name] = value
        return cls(**overrides)

    @property
    def registry_base(self) -> str:
        return self.npm_registry.rstrip("/")

    @property
    def api_base(self) -> str:
        return self.npm_api.rstrip("/")
