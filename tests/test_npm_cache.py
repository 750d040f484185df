"""test suite for npm info cache persistence."""
import pytest
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from types_publisher.domain.models import NpmInfo, NpmInfoVersion
from types_publisher.npm.cache import NpmInfoCacheStore


@pytest.fixture
def info():
    return NpmInfo(
        version="1.0.0",
        dist_tags={"latest": "1.0.0"},
        versions={"1.0.0": NpmInfoVersion(types_publisher_content_hash="H", deprecated="old")},
        time_modified="2020-01-01",
    )


class TestNpmInfoCacheStore:
    def test_load_missing_file_is_empty(self, tmp_path):
        assert NpmInfoCacheStore(tmp_path / "npmInfo.json").load() == {}

    def test_save_creates_parent_and_writes_wire_shape(self, tmp_path, info):
        cache_file = tmp_path / "nested" / "npmInfo.json"
        NpmInfoCacheStore(cache_file).save({"@types/node": info})

        data = json.loads(cache_file.read_text())
        assert data == {
            "@types/node": {
                "version": "1.0.0",
                "dist-tags": {"latest": "1.0.0"},
                "versions": {"1.0.0": {"typesPublisherContentHash": "H", "deprecated": "old"}},
                "time": {"modified": "2020-01-01"},
            }
        }
        assert list(cache_file.parent.iterdir()) == [cache_file]

    def test_save_then_load(self, tmp_path, info):
        store = NpmInfoCacheStore(tmp_path / "npmInfo.json")
        store.save({"pkg": info})
        assert store.load() == {"pkg": info}

    def test_corrupt_file_loads_empty(self, tmp_path):
        cache_file = tmp_path / "npmInfo.json"
        cache_file.write_text("{not json")
        assert NpmInfoCacheStore(cache_file).load() == {}

    def test_non_utf8_file_loads_empty(self, tmp_path):
        cache_file = tmp_path / "npmInfo.json"
        cache_file.write_bytes(b"\xff\xfe\x00{")
        assert NpmInfoCacheStore(cache_file).load() == {}

    def test_clear(self, tmp_path, info):
        store = NpmInfoCacheStore(tmp_path / "npmInfo.json")
        store.save({"pkg": info})
        assert store.clear()
        assert not store.cache_file.exists()
        assert not store.clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
