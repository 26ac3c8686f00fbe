"""Unit tests for the sensor store."""
import json

import pytest

from acrelink.errors import ValidationError
from acrelink.registry.models import NO_SITE_ID, Depth, SensorStatus
from acrelink.registry.storage import MemoryStorage
from acrelink.registry.store import SENSORS_KEY, SITES_KEY, SensorStore


class TestLoad:
    """Test first load, seeding and reload."""

    def test_seeds_fixed_count_per_site(self, store, generator):
        """An empty registry is seeded with the configured count per demo site."""
        sensors = store.list_all()

        assert len([s for s in sensors if s.site_id == "demo-a"]) == 10
        assert len(sensors) == sum(generator.seed_counts().values())

    def test_seed_is_persisted_immediately(self, storage, store):
        """Seeded data is written to storage during load."""
        stored = json.loads(storage.get_item(SENSORS_KEY))
        assert len(stored) == len(store.list_all())
        assert storage.get_item(SITES_KEY) is not None

    def test_seeded_ids_are_unique(self, store):
        ids = [s.id for s in store.list_all()]
        assert len(ids) == len(set(ids))

    def test_site_counts_match_sensors(self, store):
        """Each site's planned count equals the number of its sensors."""
        for site in store.sites():
            expected = len([s for s in store.list_all() if s.site_id == site.id])
            assert site.planned_count == expected

    def test_placeholder_site_first(self, store):
        sites = store.sites()
        assert sites[0].id == NO_SITE_ID
        assert sites[0].planned_count == 0

    def test_reload_reads_stored_state(self, storage, store, generator):
        """A second store over the same storage sees the same registry."""
        reloaded = SensorStore(storage, generator)
        reloaded.load()

        assert [s.id for s in reloaded.list_all()] == [s.id for s in store.list_all()]
        assert reloaded.get("ACR-0001").to_dict() == store.get("ACR-0001").to_dict()

    def test_corrupt_storage_reseeds(self, generator):
        """Unreadable sensor data is replaced by a fresh mock fleet."""
        storage = MemoryStorage({SENSORS_KEY: "{not json"})
        store = SensorStore(storage, generator)
        store.load()

        assert len(store.list_all()) == 30
        assert json.loads(storage.get_item(SENSORS_KEY))

    def test_empty_stored_list_is_kept(self, generator):
        """An emptied registry stays empty instead of being reseeded."""
        storage = MemoryStorage({SENSORS_KEY: "[]"})
        store = SensorStore(storage, generator)
        store.load()

        assert store.list_all() == ()
        assert all(site.planned_count == 0 for site in store.sites())

    def test_reload_after_removing_everything(self, storage, store, generator):
        for sensor in store.list_all():
            store.remove(sensor.id)

        reloaded = SensorStore(storage, generator)
        reloaded.load()

        assert reloaded.list_all() == ()

    @pytest.mark.parametrize("field,value", [("depth", 3), ("status", ["Installed"])])
    def test_malformed_field_reseeds(self, generator, field, value):
        record = {"id": "ACR-0001", "siteId": "demo-a", "depth": "shallow", field: value}
        storage = MemoryStorage({SENSORS_KEY: json.dumps([record])})
        store = SensorStore(storage, generator)
        store.load()

        assert len(store.list_all()) == 30

    def test_list_all_loads_lazily(self, storage, generator):
        store = SensorStore(storage, generator)
        assert len(store.list_all()) == 30


class TestUpsert:
    """Test insert, replace and validation."""

    def test_insert_new_record_at_front(self, store, make_record):
        saved = store.upsert(make_record("ACR-0500"))

        assert saved.id == "ACR-0500"
        assert store.list_all()[0].id == "ACR-0500"

    def test_saved_id_present_exactly_once(self, store, make_record):
        store.upsert(make_record("ACR-0500"))
        ids = [s.id for s in store.list_all()]
        assert ids.count("ACR-0500") == 1

    def test_create_scenario_on_empty_registry(self, empty_store, make_record):
        """Saving ACR-0001 for demo-a yields exactly that record."""
        empty_store.upsert(make_record("ACR-0001", site_id="demo-a", depth=Depth.SHALLOW))

        sensors = empty_store.list_all()
        assert len(sensors) == 1
        assert sensors[0].id == "ACR-0001"
        assert sensors[0].site_id == "demo-a"
        assert empty_store.site("demo-a").planned_count == 1

    def test_duplicate_id_rejected(self, store, make_record):
        """A new record reusing an existing id is rejected and the original kept."""
        original = store.get("ACR-0001").to_dict()

        with pytest.raises(ValidationError) as exc:
            store.upsert(make_record("ACR-0001", notes="impostor"))

        assert exc.value.kind == ValidationError.DUPLICATE_ID
        assert store.get("ACR-0001").to_dict() == original

    def test_duplicate_check_is_case_sensitive(self, store, make_record):
        store.upsert(make_record("acr-0001"))
        assert store.get("acr-0001") is not None
        assert store.get("ACR-0001") is not None

    def test_editing_record_keeps_own_id(self, store):
        """Saving an edited copy under its own id replaces it in place."""
        index = [s.id for s in store.list_all()].index("ACR-0002")
        draft = store.get("ACR-0002").copy()
        draft.notes = "Replaced probe"

        store.upsert(draft, original_id="ACR-0002")

        assert store.list_all()[index].notes == "Replaced probe"
        assert len(store.list_all()) == 30

    def test_rename_replaces_original(self, store):
        draft = store.get("ACR-0003").copy()
        draft.id = "ACR-0903"

        store.upsert(draft, original_id="ACR-0003")

        assert store.get("ACR-0003") is None
        assert store.get("ACR-0903") is not None
        assert len(store.list_all()) == 30

    def test_rename_onto_existing_id_rejected(self, store):
        draft = store.get("ACR-0003").copy()
        draft.id = "ACR-0004"

        with pytest.raises(ValidationError) as exc:
            store.upsert(draft, original_id="ACR-0003")
        assert exc.value.kind == ValidationError.DUPLICATE_ID

    @pytest.mark.parametrize("sensor_id", ["", "   ", "\t"])
    def test_blank_id_rejected(self, store, make_record, sensor_id):
        with pytest.raises(ValidationError) as exc:
            store.upsert(make_record(sensor_id))
        assert exc.value.kind == ValidationError.EMPTY_ID

    def test_missing_depth_rejected(self, store, make_record):
        with pytest.raises(ValidationError) as exc:
            store.upsert(make_record("ACR-0500", depth=None))
        assert exc.value.kind == ValidationError.MISSING_DEPTH

    def test_id_is_trimmed(self, store, make_record):
        saved = store.upsert(make_record("  ACR-0500 "))
        assert saved.id == "ACR-0500"
        assert store.get("ACR-0500") is not None

    def test_stored_copy_is_independent(self, store, make_record):
        record = make_record("ACR-0500")
        store.upsert(record)
        record.notes = "changed after save"

        assert store.get("ACR-0500").notes == ""

    def test_upsert_persists_and_recounts(self, storage, store, make_record, generator):
        before = store.site("demo-b").planned_count
        store.upsert(make_record("ACR-0500", site_id="demo-b", status=SensorStatus.INSTALLED))

        assert store.site("demo-b").planned_count == before + 1

        reloaded = SensorStore(storage, generator)
        reloaded.load()
        assert reloaded.get("ACR-0500").status is SensorStatus.INSTALLED
        assert reloaded.site("demo-b").planned_count == before + 1


class TestRemove:
    """Test deletion."""

    def test_remove_existing(self, store):
        before = store.site("demo-a").planned_count

        assert store.remove("ACR-0001")
        assert store.get("ACR-0001") is None
        assert store.site("demo-a").planned_count == before - 1

    def test_remove_unknown_is_noop(self, storage, store):
        writes = storage.write_count

        assert not store.remove("ACR-9999")
        assert storage.write_count == writes
        assert len(store.list_all()) == 30

    def test_remove_persists(self, storage, store, generator):
        store.remove("ACR-0101")

        reloaded = SensorStore(storage, generator)
        reloaded.load()
        assert reloaded.get("ACR-0101") is None


class TestParse:
    """Test depth and status parsing."""

    def test_depth_accepts_label_and_short_name(self):
        assert Depth.parse("Deep (12–24 in)") is Depth.DEEP
        assert Depth.parse(" medium ") is Depth.MEDIUM
        assert Depth.parse("") is None

    @pytest.mark.parametrize("value", [3, 1.5, ["shallow"], {"depth": "deep"}])
    def test_depth_rejects_non_strings(self, value):
        with pytest.raises(ValueError):
            Depth.parse(value)

    def test_status_defaults_to_planned(self):
        assert SensorStatus.parse(None) is SensorStatus.PLANNED
        assert SensorStatus.parse("needs-service") is SensorStatus.NEEDS_SERVICE

    @pytest.mark.parametrize("value", [0, ["Offline"]])
    def test_status_rejects_non_strings(self, value):
        with pytest.raises(ValueError):
            SensorStatus.parse(value)
