from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NpmInfoRawVersion(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    types_publisher_content_hash: Optional[str] = Field(default=None, alias="typesPublisherContentHash")
    deprecated: Optional[str] = None


class NpmInfoRawTime(BaseModel):
    model_config = ConfigDict(extra="ignore")

    modified: str


class NpmInfoRaw(BaseModel):
    """a registry document as served upstream; unknown fields are ignored."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    version: Optional[str] = None
    dist_tags: Dict[str, str] = Field(default_factory=dict, alias="dist-tags")
    versions: Dict[str, NpmInfoRawVersion] = Field(default_factory=dict)
    time: NpmInfoRawTime


class NpmInfoVersion(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    types_publisher_content_hash: Optional[str] = None
    deprecated: Optional[str] = None


class NpmInfo(BaseModel):
    """processed npm info. intentionally kept small so it can be cached."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    version: Optional[str] = None
    dist_tags: Dict[str, str] = Field(default_factory=dict)
    versions: Dict[str, NpmInfoVersion] = Field(default_factory=dict)
    time_modified: str

    def has_content_hash(self, content_hash: str) -> bool:
        return any(v.types_publisher_content_hash == content_hash for v in self.versions.values())


def normalize(raw: Any) -> NpmInfo:
    """
    convert a raw registry document (dict or NpmInfoRaw) into NpmInfo.

    every version is rebuilt from its content hash and deprecation message
    only, so no other upstream field reaches the cache.
    """
    if not isinstance(raw, NpmInfoRaw):
        raw = NpmInfoRaw.model_validate(raw)

    return NpmInfo(
        version=raw.version,
        dist_tags=dict(raw.dist_tags),
        versions={
            number: NpmInfoVersion(
                types_publisher_content_hash=v.types_publisher_content_hash,
                deprecated=v.deprecated,
            )
            for number, v in raw.versions.items()
        },
        time_modified=raw.time.modified,
    )


def denormalize(info: NpmInfo) -> Dict[str, Any]:
    """convert NpmInfo back into the wire shape used for persistence."""
    raw = NpmInfoRaw(
        version=info.version,
        dist_tags=dict(info.dist_tags),
        versions={
            number: NpmInfoRawVersion(
                types_publisher_content_hash=v.types_publisher_content_hash,
                deprecated=v.deprecated,
            )
            for number, v in info.versions.items()
        },
        time=NpmInfoRawTime(modified=info.time_modified),
    )
    return raw.model_dump(by_alias=True, exclude_none=True)


class RegistryPackageJson(BaseModel):
    """manifest of the generated registry package."""
    name: str
    version: str
    description: str = ""
    repository: Dict[str, str] = Field(default_factory=dict)
    keywords: List[str] = Field(default_factory=list)
    author: Optional[str] = None
    license: str = "MIT"
