import json

from geowhisper.core.store import FileStore, MemoryStore
from geowhisper.zones.numbering import INDEX_MAP_KEY, ZoneNumbering


class BrokenStore:
    def __init__(self):
        self.writes = 0

    def get(self, key):
        raise OSError("storage disabled")

    def set(self, key, value):
        self.writes += 1
        raise OSError("storage disabled")


class ReadOnlyStore(MemoryStore):
    def set(self, key, value):
        raise OSError("quota exceeded")


def test_new_zones_numbered_in_first_seen_order():
    numbering = ZoneNumbering(MemoryStore())
    labels = [numbering.get_zone_number(z) for z in ["t-a", "t-b", "t-c"]]
    assert labels == ["Zone 1", "Zone 2", "Zone 3"]


def test_zone_number_is_idempotent():
    store = MemoryStore()
    numbering = ZoneNumbering(store)

    assert numbering.get_zone_number("abc") == "Zone 1"
    assert numbering.get_zone_number("def") == "Zone 2"
    assert numbering.get_zone_number("abc") == "Zone 1"
    assert json.loads(store.get(INDEX_MAP_KEY)) == {"abc": 1, "def": 2}


def test_empty_zone_id_has_no_number():
    store = MemoryStore()
    numbering = ZoneNumbering(store)

    assert numbering.get_zone_number("") == "Zone"
    assert numbering.get_zone_number(None) == "Zone"
    assert store.get(INDEX_MAP_KEY) is None


def test_numbers_survive_a_new_resolver_on_the_same_session(tmp_path):
    ZoneNumbering(FileStore(tmp_path)).get_zone_number("abc")
    again = ZoneNumbering(FileStore(tmp_path))

    assert again.get_zone_number("xyz") == "Zone 2"
    assert again.get_zone_number("abc") == "Zone 1"


def test_storage_failure_degrades_to_short_id():
    store = BrokenStore()
    numbering = ZoneNumbering(store)

    assert numbering.get_zone_number("abcdef123456") == "Zone abcdef"
    assert store.writes == 0


def test_corrupt_map_degrades_without_persisting():
    store = MemoryStore({INDEX_MAP_KEY: "[1, 2, 3]"})
    numbering = ZoneNumbering(store)

    assert numbering.get_zone_number("abcdef123456") == "Zone abcdef"
    assert store.get(INDEX_MAP_KEY) == "[1, 2, 3]"

    store = MemoryStore({INDEX_MAP_KEY: "{bad json"})
    assert ZoneNumbering(store).get_zone_number("abcdef123456") == "Zone abcdef"


def test_write_failure_still_returns_the_number():
    numbering = ZoneNumbering(ReadOnlyStore())
    assert numbering.get_zone_number("abc") == "Zone 1"


def test_gap_in_map_never_reuses_a_number():
    store = MemoryStore({INDEX_MAP_KEY: json.dumps({"a": 1, "c": 3})})
    numbering = ZoneNumbering(store)

    assert numbering.get_zone_number("d") == "Zone 4"
    assert numbering.get_zone_number("c") == "Zone 3"
