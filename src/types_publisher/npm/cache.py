import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict

from pydantic import ValidationError

from ..domain.models import NpmInfo, denormalize, normalize

logger = logging.getLogger(__name__)

NpmInfoCache = Dict[str, NpmInfo]


class NpmInfoCacheStore:
    """handles npm info cache persistence to JSON."""

    def __init__(self, cache_file: Path):
        self.cache_file = cache_file

    def load(self) -> NpmInfoCache:
        """load the cache from its JSON file, or start empty."""
        if not self.cache_file.exists():
            return {}

        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return {name: normalize(raw) for name, raw in data.items()}
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError, AttributeError) as e:
            logger.warning(f"ignoring unreadable npm info cache at {self.cache_file}: {e}")
            return {}

    def save(self, cache: NpmInfoCache) -> None:
        """write the cache, replacing the previous file in one step."""
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)

        data = {name: denormalize(info) for name, info in cache.items()}
        fd, tmp_path = tempfile.mkstemp(dir=self.cache_file.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.cache_file)
        except Exception:
            os.unlink(tmp_path)
            raise
        logger.debug(f"wrote {len(data)} entries to {self.cache_file}")

    def clear(self) -> bool:
        if self.cache_file.exists():
            self.cache_file.unlink()
            return True
        return False
