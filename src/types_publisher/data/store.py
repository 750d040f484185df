import json
from pathlib import Path
from typing import List

ADDITIONS_FILE = "additions.json"
TYPINGS_FILE = "typings.json"


class PublisherDataStore:
    """reads the outputs of the earlier pipeline steps from the data directory."""

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir

    @property
    def typings_path(self) -> Path:
        return self.data_dir / TYPINGS_FILE

    def has_typings(self) -> bool:
        return self.typings_path.exists()

    def read_additions(self) -> List[str]:
        """packages added since the last successful publish (a JSON list)."""
        path = self.data_dir / ADDITIONS_FILE
        if not path.exists():
            return []
        with open(path) as f:
            return list(json.load(f))

    def read_typings(self) -> List[str]:
        """names of every known typings package, sorted.

        typings.json is an object keyed by package name.
        """
        with open(self.typings_path) as f:
            return sorted(json.load(f).keys())
