"""test suite for npm info models."""
import pytest
from pydantic import ValidationError
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from types_publisher.domain.models import NpmInfo, NpmInfoVersion, denormalize, normalize


def raw_document():
    return {
        "_id": "@types/node",
        "name": "@types/node",
        "version": "1.0.1",
        "dist-tags": {"latest": "1.0.1", "ts3.0": "1.0.0"},
        "versions": {
            "1.0.0": {
                "name": "@types/node",
                "typesPublisherContentHash": "aaa",
                "deprecated": "use 1.0.1",
                "dependencies": {"foo": "*"},
            },
            "1.0.1": {"typesPublisherContentHash": "bbb", "dist": {"shasum": "x"}},
        },
        "time": {"modified": "2018-01-01T00:00:00.000Z", "created": "2017-01-01T00:00:00.000Z"},
        "readme": "a very long readme",
    }


class TestNormalize:
    def test_copies_tracked_fields(self):
        info = normalize(raw_document())
        assert info.version == "1.0.1"
        assert info.dist_tags == {"latest": "1.0.1", "ts3.0": "1.0.0"}
        assert info.time_modified == "2018-01-01T00:00:00.000Z"
        assert info.versions["1.0.0"] == NpmInfoVersion(
            types_publisher_content_hash="aaa", deprecated="use 1.0.1"
        )
        assert info.versions["1.0.1"].deprecated is None

    def test_drops_untracked_fields(self):
        info = normalize(raw_document())
        assert set(info.model_dump().keys()) == {"version", "dist_tags", "versions", "time_modified"}
        assert set(info.versions["1.0.0"].model_dump().keys()) == {"types_publisher_content_hash", "deprecated"}

    def test_version_without_content_hash(self):
        raw = raw_document()
        raw["versions"]["0.9.0"] = {"name": "@types/node"}
        info = normalize(raw)
        assert info.versions["0.9.0"].types_publisher_content_hash is None

    def test_missing_time_is_rejected(self):
        raw = raw_document()
        del raw["time"]
        with pytest.raises(ValidationError):
            normalize(raw)


class TestDenormalize:
    def test_round_trip_keeps_only_tracked_fields(self):
        result = denormalize(normalize(raw_document()))
        assert result == {
            "version": "1.0.1",
            "dist-tags": {"latest": "1.0.1", "ts3.0": "1.0.0"},
            "versions": {
                "1.0.0": {"typesPublisherContentHash": "aaa", "deprecated": "use 1.0.1"},
                "1.0.1": {"typesPublisherContentHash": "bbb"},
            },
            "time": {"modified": "2018-01-01T00:00:00.000Z"},
        }

    def test_normalize_of_denormalized_is_identity(self):
        info = normalize(raw_document())
        assert normalize(denormalize(info)) == info


class TestNpmInfo:
    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            NpmInfo(time_modified="t", readme="no")

    def test_has_content_hash(self):
        info = normalize(raw_document())
        assert info.has_content_hash("aaa")
        assert info.has_content_hash("bbb")
        assert not info.has_content_hash("ccc")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
