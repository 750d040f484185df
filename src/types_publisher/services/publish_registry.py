import json
import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from packaging.version import InvalidVersion, Version

from ..config import Settings
from ..data.store import PublisherDataStore
from ..domain.errors import NpmRegistryError
from ..domain.models import RegistryPackageJson
from ..npm.client import UncachedNpmInfoClient
from ..npm.publish import NpmPublishClient

logger = logging.getLogger(__name__)

PACKAGE_NAME = "types-registry"

README = """This package contains a listing of all packages published to the @types scope on NPM.
Generated by [types-publisher](https://github.com/Microsoft/types-publisher)."""


class RegistryState(Enum):
    NOTHING_CHANGED = "nothing_changed"
    CHANGED = "changed"


class PublishRegistryService:
    """regenerates and publishes the types-registry index package when packages were added."""

    def __init__(
        self,
        info_client: UncachedNpmInfoClient,
        data_store: PublisherDataStore,
        settings: Optional[Settings] = None,
        publish_client_factory: Optional[Callable[[], NpmPublishClient]] = None,
    ):
        self.info_client = info_client
        self.data_store = data_store
        self.settings = settings or Settings()
        self.publish_client_factory = publish_client_factory or (lambda: NpmPublishClient.create(self.settings))

    @property
    def output_path(self) -> Path:
        return self.settings.output_path / PACKAGE_NAME

    async def run(self, dry: bool = False) -> RegistryState:
        logger.info(f"=== Publishing {PACKAGE_NAME} ===")

        # only need to publish a new registry if there are new packages
        added = self.data_store.read_additions()
        if not added:
            logger.info("No new packages published, so no need to publish new registry.")
            return RegistryState.NOTHING_CHANGED

        logger.info(f"New packages have been added: {json.dumps(added)}, so publishing a new registry")
        await self.generate_and_publish(dry)
        return RegistryState.CHANGED

    async def generate_and_publish(self, dry: bool) -> RegistryPackageJson:
        typings = self.data_store.read_typings()
        last = await self.fetch_last_patch_number()
        package_json = generate_package_json(last + 1)
        self.generate(typings, package_json)

        async with self.publish_client_factory() as client:
            await client.publish(self.output_path, package_json.model_dump(exclude_none=True), dry)
        return package_json

    def generate(self, typings: List[str], package_json: RegistryPackageJson):
        if self.output_path.exists():
            shutil.rmtree(self.output_path)
        self.output_path.mkdir(parents=True)

        self._write_json("package.json", package_json.model_dump(exclude_none=True))
        self._write_json("index.json", generate_registry(typings))
        (self.output_path / "README.md").write_text(README)
        logger.info(f"generated {PACKAGE_NAME}@{package_json.version} with {len(typings)} entries")

    async def fetch_last_patch_number(self) -> int:
        """patch number of the highest non-prerelease published version."""
        info = await self.info_client.fetch_npm_info(PACKAGE_NAME)
        if info is None:
            raise NpmRegistryError(PACKAGE_NAME, "package has never been published")

        releases = []
        for number in info.versions:
            # "-" marks a semver prerelease
            if "-" in number:
                continue
            try:
                parsed = Version(number)
            except InvalidVersion:
                continue
            if not parsed.is_prerelease:
                releases.append(parsed)

        if not releases:
            raise NpmRegistryError(PACKAGE_NAME, "no released versions found")
        return max(releases).micro

    def _write_json(self, filename: str, content) -> None:
        with open(self.output_path / filename, "w") as f:
            json.dump(content, f, indent=4)


def generate_package_json(patch: int) -> RegistryPackageJson:
    return RegistryPackageJson(
        name=PACKAGE_NAME,
        version=f"0.1.{patch}",
        description="A registry of TypeScript declaration file packages published within the @types scope.",
        repository={
            "type": "git",
            "url": "https://github.com/Microsoft/types-publisher.git",
        },
        keywords=["TypeScript", "declaration", "files", "types", "packages"],
        author="Microsoft Corp.",
        license="Apache-2.0",
    )


def generate_registry(typings: List[str]) -> Dict[str, Dict[str, int]]:
    return {"entries": {name: 1 for name in typings}}
