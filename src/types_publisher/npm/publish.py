import base64
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..bundling.packager import Packager
from ..config import Settings
from ..domain.errors import PublishError
from ..secrets import Secret, get_secret
from .client import escape_package_name

logger = logging.getLogger(__name__)


class NpmPublishClient:
    """performs mutating registry operations with an auth token."""

    def __init__(
        self,
        token: str,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        packager: Optional[Packager] = None,
    ):
        self._token = token
        self.settings = settings or Settings()
        self.client = client or httpx.AsyncClient(timeout=60.0)
        self.packager = packager or Packager()

    @classmethod
    def create(cls, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> "NpmPublishClient":
        """
        build a client authenticated with the NPM_TOKEN secret.

        raises:
            MissingSecretError: if the token is not configured
        """
        token = get_secret(Secret.NPM_TOKEN)
        return cls(token, settings, client)

    def package_url(self, package_name: str) -> str:
        return f"{self.settings.registry_base}/{escape_package_name(package_name)}"

    async def publish(self, published_directory: Path, package_json: Dict[str, Any], dry: bool) -> None:
        """
        publish the contents of a directory as a new package version.

        args:
            published_directory: directory holding README.md and the package files
            package_json: manifest to publish (name and version required)
            dry: if True, build the payload but do not contact the registry
        """
        readme = (published_directory / "README.md").read_text()
        tarball = self.packager.create_tarball(published_directory)
        metadata = {"readme": readme, **package_json}

        if dry:
            logger.info(f"dry run: skipping publish of {metadata['name']}@{metadata['version']}")
            return

        body = self._publish_document(metadata, tarball)
        logger.info(f"publishing {metadata['name']}@{metadata['version']}")
        await self._send("PUT", self.package_url(metadata["name"]), body)

    async def tag(self, package_name: str, version: str, tag: str) -> None:
        """point the dist-tag `tag` at `version`."""
        url = f"{self.settings.registry_base}/-/package/{escape_package_name(package_name)}/dist-tags/{tag}"
        logger.info(f"tagging {package_name}@{version} as {tag}")
        await self._send("PUT", url, version)

    async def deprecate(self, package_name: str, version: str, message: str) -> None:
        """mark one version as deprecated; the version stays in the registry."""
        url = self.package_url(package_name)
        document = await self._send("GET", f"{url}?write=true")

        versions = document.get("versions", {}) if isinstance(document, dict) else {}
        if version not in versions:
            raise PublishError(f"cannot deprecate {package_name}@{version}: version not found")
        versions[version]["deprecated"] = message

        logger.info(f"deprecating {package_name}@{version}")
        await self._send("PUT", url, document)

    def _publish_document(self, metadata: Dict[str, Any], tarball: bytes) -> Dict[str, Any]:
        name = metadata["name"]
        version = metadata["version"]
        # scoped packages keep only the bare name in the tarball file name
        tarball_name = f"{name.split('/')[-1]}-{version}.tgz"

        version_metadata = {
            **metadata,
            "_id": f"{name}@{version}",
            "dist": {
                **self.packager.digests(tarball),
                "tarball": f"{self.settings.registry_base}/{name}/-/{tarball_name}",
            },
        }

        return {
            "_id": name,
            "name": name,
            "description": metadata.get("description", ""),
            "dist-tags": {"latest": version},
            "versions": {version: version_metadata},
            "readme": metadata.get("readme", ""),
            "access": "public",
            "_attachments": {
                tarball_name: {
                    "content_type": "application/octet-stream",
                    "data": base64.b64encode(tarball).decode(),
                    "length": len(tarball),
                }
            },
        }

    async def _send(self, method: str, url: str, body: Any = None) -> Any:
        headers = {"Authorization": f"Bearer {self._token}"}
        try:
            if body is None:
                response = await self.client.request(method, url, headers=headers)
            else:
                response = await self.client.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise PublishError(f"{method} {url} failed: {e}") from e

        if response.is_error:
            raise PublishError(f"{method} {url} failed with {response.status_code}: {_error_message(response)}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self) -> "NpmPublishClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("error") or data.get("reason") or data)
    return str(data)
