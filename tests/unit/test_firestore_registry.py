"""Unit tests for FirestoreUserRegistry with a fake Firestore client."""

from datetime import datetime, timezone

import pytest

from app.services.student_code_service import (
    FIRESTORE_BATCH_LIMIT,
    FirestoreUserRegistry,
    StudentCodeConflict,
    StudentCodeService,
)


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return dict(self._data)


class FakeDocument:
    def __init__(self, store, doc_id):
        self.store = store
        self.id = doc_id

    def update(self, data):
        self.store[self.id].update(data)


class FakeQuery:
    def __init__(self, store, filters=(), max_results=None):
        self.store = store
        self.filters = list(filters)
        self.max_results = max_results

    def where(self, field, op, value):
        assert op == "=="
        return FakeQuery(self.store, self.filters + [(field, value)], self.max_results)

    def limit(self, count):
        return FakeQuery(self.store, self.filters, count)

    def stream(self):
        matches = [
            FakeSnapshot(doc_id, data)
            for doc_id, data in self.store.items()
            if all(data.get(field) == value for field, value in self.filters)
        ]
        return iter(matches[: self.max_results] if self.max_results else matches)


class FakeCollection(FakeQuery):
    def document(self, doc_id):
        return FakeDocument(self.store, doc_id)


class FakeBatch:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def update(self, ref, data):
        self.ops.append((ref, data))

    def commit(self):
        assert len(self.ops) <= FIRESTORE_BATCH_LIMIT
        self.client.batch_sizes.append(len(self.ops))
        for ref, data in self.ops:
            ref.update(data)


class FakeFirestore:
    def __init__(self, docs):
        self.docs = docs
        self.batch_sizes = []

    def collection(self, name):
        assert name == "users"
        return FakeCollection(self.docs)

    def batch(self):
        return FakeBatch(self)


def _at(day):
    return datetime(2024, 1, day, tzinfo=timezone.utc)


@pytest.fixture
def firestore():
    return FakeFirestore({
        "u3": {"role": "student", "studentCode": "SU-007", "name": "Cleo", "createdAt": _at(3)},
        "u1": {"role": "student", "studentCode": "SU-002", "name": "Abe", "createdAt": _at(1)},
        "t1": {"role": "teacher", "name": "Tess", "createdAt": _at(1)},
        "u2": {"role": "student", "studentCode": None, "name": "Bea", "createdAt": _at(2)},
        "u4": {"role": "student", "studentCode": "SU-001", "name": "Dan"},
    })


async def test_list_student_codes_skips_missing_and_non_students(firestore):
    registry = FirestoreUserRegistry(client=firestore)
    assert sorted(await registry.list_student_codes()) == ["SU-001", "SU-002", "SU-007"]


async def test_students_ordered_by_creation_with_undated_last(firestore):
    registry = FirestoreUserRegistry(client=firestore)
    entries = await registry.list_students_by_creation()
    assert [e.id for e in entries] == ["u1", "u2", "u3", "u4"]
    assert entries[0].name == "Abe"


async def test_set_student_code_rejects_code_held_by_another(firestore):
    registry = FirestoreUserRegistry(client=firestore)
    with pytest.raises(StudentCodeConflict):
        await registry.set_student_code("u2", "SU-001")
    assert firestore.docs["u2"]["studentCode"] is None


async def test_set_student_code_same_holder_is_allowed(firestore):
    registry = FirestoreUserRegistry(client=firestore)
    await registry.set_student_code("u4", "SU-001")
    assert firestore.docs["u4"]["studentCode"] == "SU-001"


async def test_clear_codes_in_batches():
    docs = {f"s{i}": {"role": "student", "studentCode": f"SU-{i:03d}"} for i in range(1, 1202)}
    client = FakeFirestore(docs)
    registry = FirestoreUserRegistry(client=client)

    await registry.clear_student_codes(list(docs))
    assert client.batch_sizes == [500, 500, 201]
    assert all(d["studentCode"] is None for d in docs.values())


async def test_compaction_over_firestore(firestore):
    service = StudentCodeService(FirestoreUserRegistry(client=firestore))
    report = await service.compact()

    assert report.success
    codes = {doc_id: data.get("studentCode") for doc_id, data in firestore.docs.items()}
    assert codes == {"u1": "SU-001", "u2": "SU-002", "u3": "SU-003", "u4": "SU-004", "t1": None}
