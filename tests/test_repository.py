import pytest

from coachdesk.errors import StudentNotFound
from coachdesk.models.student import StudentCreate
from coachdesk.services.repository import StudentRepository
from coachdesk.services.store import collection_path


def test_collection_path_is_scoped_by_deployment_and_coach(store):
    assert store.path == "artifacts/test-app/users/coach-1/students"
    assert collection_path("cricnets-app-v6", "u1") == "artifacts/cricnets-app-v6/users/u1/students"


async def test_create_forces_empty_collections(store):
    repository = StudentRepository(store)
    student_id = await repository.create(
        {
            "name": "Alice",
            "contact": "555",
            "notes": [{"id": "x", "date": "2024-01-01", "text": "sneaky"}],
            "payments": [{"id": "p", "month": "2024-01", "amount": 1, "dateReceived": "2024-01-01T00:00:00Z"}],
            "attendance": {"2024-01-01": "present"},
        }
    )
    await repository.load()
    student = repository.get(student_id)
    assert student.notes == []
    assert student.payments == []
    assert student.attendance == {}
    assert student.package.value == "1-day"
    assert student.is_active is True
    assert student.waiver_signed is False


async def test_create_then_patch_enrolled_days(store):
    repository = StudentRepository(store)
    student_id = await repository.create(StudentCreate(name="Bo", contact="1"))
    await repository.patch(student_id, {"enrolled_days": ["Tuesday", "Thursday"]})
    await repository.load()
    student = repository.get(student_id)
    assert student.enrolled_days == ["Tuesday", "Thursday"]
    assert student.notes == [] and student.payments == [] and student.attendance == {}


async def test_create_rejects_missing_required_fields(store):
    repository = StudentRepository(store)
    with pytest.raises(ValueError):
        await repository.create({"name": "  ", "contact": "1"})
    assert store.docs == {}


async def test_subscribe_pushes_initial_and_changed_snapshots(store):
    store.seed(name="First", contact="1")
    repository = StudentRepository(store)

    async with repository.subscribe() as snapshots:
        initial = await anext(snapshots)
        assert [s.name for s in initial] == ["First"]
        assert [s.name for s in repository.students] == ["First"]

        await repository.create({"name": "Second", "contact": "2"})
        assert [s.name for s in repository.students] == ["First"]

        changed = await anext(snapshots)
        assert [s.name for s in changed] == ["First", "Second"]
        assert [s.name for s in repository.students] == ["First", "Second"]
        assert len(store.listeners) == 1

    assert store.listeners == []


async def test_subscription_released_when_body_raises(store):
    repository = StudentRepository(store)
    with pytest.raises(RuntimeError):
        async with repository.subscribe() as snapshots:
            await anext(snapshots)
            raise RuntimeError("view torn down")
    assert store.listeners == []


async def test_get_unknown_student(store):
    repository = StudentRepository(store)
    await repository.load()
    with pytest.raises(StudentNotFound):
        repository.get("missing")
    assert repository.find("missing") is None
    assert repository.find(None) is None


async def test_students_property_is_a_copy(store):
    store.seed(name="A", contact="1")
    repository = StudentRepository(store)
    await repository.load()
    repository.students.clear()
    assert len(repository.students) == 1
