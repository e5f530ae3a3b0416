"""
Tests for master data CRUD and cascading deletes.
"""

import pendulum
import pytest

from timetabler.adapters.memory_store import InMemoryScheduleStore
from timetabler.domain.cache import CollectionCache
from timetabler.domain.exceptions import EntityNotFoundError
from timetabler.domain.master_data import EntityType, Room, Teacher
from timetabler.domain.models import SlotData
from timetabler.services.master_data_service import MasterDataService
from timetabler.services.schedule_service import SLOTS_CACHE_KEY, ScheduleService


def _data(day="mon", teacher="t1", room="r1") -> SlotData:
    return SlotData.build(
        day=day, start="08:00", end="09:00",
        teacher_id=teacher, subject_id="sub1", class_id="c1", room_id=room,
    )


@pytest.fixture
def store() -> InMemoryScheduleStore:
    return InMemoryScheduleStore(master_data={
        EntityType.TEACHER: [Teacher(id="t1", name="Baker"), Teacher(id="t2", name="adams")],
        EntityType.ROOM: [Room(id="r1", name="101", capacity=30)],
    })


@pytest.fixture
def cache() -> CollectionCache:
    return CollectionCache()


@pytest.fixture
def service(store, cache) -> MasterDataService:
    return MasterDataService(store, cache=cache)


class TestMasterDataService:
    """Tests for generic master data operations."""

    def test_list_sorted_by_name(self, service):
        assert [t.id for t in service.list(EntityType.TEACHER)] == ["t2", "t1"]

    def test_names(self, service):
        assert service.names(EntityType.ROOM) == {"r1": "101"}

    def test_create_and_get(self, service):
        room = service.create(EntityType.ROOM, name="Lab", capacity=20)

        assert isinstance(room, Room)
        assert service.get(EntityType.ROOM, room.id).name == "Lab"
        assert room in service.list(EntityType.ROOM)

    def test_update(self, service):
        service.list(EntityType.TEACHER)

        updated = service.update(EntityType.TEACHER, "t1", employee_id="E-7")

        assert updated.employee_id == "E-7"
        assert service.get(EntityType.TEACHER, "t1").employee_id == "E-7"
        assert updated in service.list(EntityType.TEACHER)

    def test_get_unknown(self, service):
        with pytest.raises(EntityNotFoundError, match="Unknown subject id: nope"):
            service.get(EntityType.SUBJECT, "nope")

    def test_list_is_cached_per_type(self, service, cache):
        service.list(EntityType.TEACHER)

        assert cache.is_loaded(EntityType.TEACHER)
        assert not cache.is_loaded(EntityType.ROOM)

        service.create(EntityType.TEACHER, name="Chen")
        assert not cache.is_loaded(EntityType.TEACHER)


class TestCascadeDelete:
    """Tests for deleting master records referenced by slots."""

    def test_delete_removes_referencing_slots(self, store, cache, service):
        schedule = ScheduleService(store=store, cache=cache)
        kept = schedule.create_slot(_data(teacher="t2", room="r2"))
        schedule.create_slot(_data(teacher="t1"))
        schedule.create_slot(_data(day="tue", teacher="t1"))
        schedule.list_slots_for_week(pendulum.date(2024, 11, 25))

        removed = service.delete(EntityType.TEACHER, "t1")

        assert len(removed) == 2
        assert not cache.is_loaded(SLOTS_CACHE_KEY)
        assert schedule.list_slots_for_week(pendulum.date(2024, 11, 25)) == [kept]
        assert [t.id for t in service.list(EntityType.TEACHER)] == ["t2"]

    def test_delete_without_references(self, store, service):
        assert service.delete(EntityType.ROOM, "r1") == []
        assert service.list(EntityType.ROOM) == []

    def test_delete_unknown(self, service):
        with pytest.raises(EntityNotFoundError):
            service.delete(EntityType.CLASS, "missing")
