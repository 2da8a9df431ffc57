from nearneeds.core.cache import FileCache


def test_set_get_delete(tmp_path):
    cache = FileCache(tmp_path)

    cache.set("auth", "https://demo.backend.test", {"user_id": "u"})
    assert cache.get("auth", "https://demo.backend.test") == {"user_id": "u"}
    assert cache.get("auth", "other") is None

    cache.delete("auth", "https://demo.backend.test")
    cache.delete("auth", "https://demo.backend.test")
    assert cache.get("auth", "https://demo.backend.test") is None


def test_entries_expire(monkeypatch, tmp_path):
    cache = FileCache(tmp_path, default_ttl_seconds=10)

    monkeypatch.setattr("nearneeds.core.cache.time.time", lambda: 0)
    cache.set("ns", "k", [1, 2])

    monkeypatch.setattr("nearneeds.core.cache.time.time", lambda: 5)
    assert cache.get("ns", "k") == [1, 2]

    monkeypatch.setattr("nearneeds.core.cache.time.time", lambda: 11)
    assert cache.get("ns", "k") is None


def test_corrupt_entry_reads_as_missing(tmp_path):
    cache = FileCache(tmp_path)
    cache.set("ns", "k", 1)
    next((tmp_path / "ns").glob("*.json")).write_text("{not json", encoding="utf-8")

    assert cache.get("ns", "k") is None


def test_disabled_cache_stores_nothing(tmp_path):
    cache = FileCache(tmp_path / "off", enabled=False)

    cache.set("ns", "k", 1)

    assert cache.get("ns", "k") is None
    assert not (tmp_path / "off").exists()
