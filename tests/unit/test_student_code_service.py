"""Unit tests for StudentCodeService against an in-memory registry."""

from typing import Any, Dict, Iterable, List, Optional

import pytest

from app.services.student_code_service import (
    FirestoreUserRegistry,
    RegistryBackend,
    SQLUserRegistry,
    StudentCodeConflict,
    StudentCodeService,
    get_registry,
)
from app.utils.student_codes import StudentEntry


class MemoryRegistry:
    """Registry keeping students in insertion (registration) order."""

    def __init__(self, students: Optional[List[Dict[str, Any]]] = None):
        self.students = students or []
        self.fail_set_on: Optional[str] = None
        self.fail_clear = False
        self.set_calls: List[str] = []

    async def list_student_codes(self) -> List[str]:
        return [s["code"] for s in self.students if s["code"]]

    async def list_students_by_creation(self) -> List[StudentEntry]:
        return [StudentEntry(id=s["id"], student_code=s["code"], name=s.get("name")) for s in self.students]

    async def set_student_code(self, student_id: Any, code: str) -> None:
        self.set_calls.append(code)
        if code == self.fail_set_on:
            raise RuntimeError("write failed")
        if any(s["code"] == code and s["id"] != student_id for s in self.students):
            raise StudentCodeConflict(code)
        for s in self.students:
            if s["id"] == student_id:
                s["code"] = code

    async def clear_student_codes(self, student_ids: Iterable[Any]) -> None:
        if self.fail_clear:
            raise RuntimeError("clear failed")
        ids = set(student_ids)
        for s in self.students:
            if s["id"] in ids:
                s["code"] = None


def _students(*codes) -> List[Dict[str, Any]]:
    return [{"id": f"s{i}", "code": code, "name": f"Student {i}"} for i, code in enumerate(codes, start=1)]


# ---------------------------------------------------------------------------
# Preview and gap report
# ---------------------------------------------------------------------------

async def test_preview_next_code_does_not_reserve():
    registry = MemoryRegistry(_students("SU-001", "SU-003"))
    service = StudentCodeService(registry)
    assert await service.preview_next_code() == ("SU-002", 2)
    assert await service.preview_next_code() == ("SU-002", 2)
    assert registry.set_calls == []


async def test_preview_next_code_empty():
    service = StudentCodeService(MemoryRegistry())
    assert await service.preview_next_code() == ("SU-001", 0)


async def test_gap_report():
    service = StudentCodeService(MemoryRegistry(_students("SU-001", "SU-004", None)))
    report = await service.gap_report()
    assert report.highest_code == "SU-004"
    assert report.gaps == ["SU-002", "SU-003"]


# ---------------------------------------------------------------------------
# allocate_with_retry
# ---------------------------------------------------------------------------

async def test_allocate_passes_next_code_to_create():
    registry = MemoryRegistry(_students("SU-001", "SU-002"))
    service = StudentCodeService(registry, max_retries=1)
    seen = []

    async def create(code: str) -> str:
        seen.append(code)
        return code

    assert await service.allocate_with_retry(create) == "SU-003"
    assert seen == ["SU-003"]


async def test_allocate_retries_after_conflict_with_fresh_read():
    registry = MemoryRegistry(_students("SU-001"))
    service = StudentCodeService(registry, max_retries=1)
    seen = []

    async def create(code: str) -> str:
        seen.append(code)
        if len(seen) == 1:
            # Another writer takes the code between read and insert
            registry.students.append({"id": "other", "code": code})
            raise StudentCodeConflict(code)
        return code

    assert await service.allocate_with_retry(create) == "SU-003"
    assert seen == ["SU-002", "SU-003"]


async def test_allocate_gives_up_after_max_retries():
    service = StudentCodeService(MemoryRegistry(), max_retries=1)
    attempts = []

    async def create(code: str) -> str:
        attempts.append(code)
        raise StudentCodeConflict(code)

    with pytest.raises(StudentCodeConflict) as exc_info:
        await service.allocate_with_retry(create)
    assert len(attempts) == 2
    assert exc_info.value.code == "SU-001"


async def test_allocate_without_retries():
    service = StudentCodeService(MemoryRegistry(), max_retries=0)
    attempts = []

    async def create(code: str) -> str:
        attempts.append(code)
        raise StudentCodeConflict(code)

    with pytest.raises(StudentCodeConflict):
        await service.allocate_with_retry(create)
    assert attempts == ["SU-001"]


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        StudentCodeService(MemoryRegistry(), max_retries=-1)


async def test_allocate_propagates_other_errors_immediately():
    service = StudentCodeService(MemoryRegistry(), max_retries=3)
    attempts = []

    async def create(code: str) -> str:
        attempts.append(code)
        raise ValueError("Email already registered")

    with pytest.raises(ValueError):
        await service.allocate_with_retry(create)
    assert attempts == ["SU-001"]


# ---------------------------------------------------------------------------
# compact
# ---------------------------------------------------------------------------

async def test_compact_renumbers_by_registration_order():
    registry = MemoryRegistry(_students("SU-005", "SU-002", None, "SU-004"))
    report = await StudentCodeService(registry).compact()

    assert report.success
    assert [s["code"] for s in registry.students] == ["SU-001", "SU-002", "SU-003", "SU-004"]
    assert [(c.id, c.old_code, c.new_code) for c in report.updated] == [
        ("s1", "SU-005", "SU-001"),
        ("s3", None, "SU-003"),
    ]


async def test_compact_swaps_without_conflicts():
    registry = MemoryRegistry(_students("SU-002", "SU-001"))
    report = await StudentCodeService(registry).compact()
    assert report.success
    assert [s["code"] for s in registry.students] == ["SU-001", "SU-002"]


async def test_compact_is_idempotent():
    registry = MemoryRegistry(_students("SU-003", "SU-009"))
    service = StudentCodeService(registry)
    await service.compact()
    registry.set_calls.clear()

    report = await service.compact()
    assert report.success
    assert report.updated == []
    assert registry.set_calls == []
    assert "already sequential" in report.message


async def test_compact_reports_partial_failure():
    registry = MemoryRegistry(_students("SU-004", "SU-005", "SU-006"))
    registry.fail_set_on = "SU-002"
    report = await StudentCodeService(registry).compact()

    assert not report.success
    assert [c.new_code for c in report.updated] == ["SU-001"]
    assert [c.new_code for c in report.failed] == ["SU-002"]
    assert [c.new_code for c in report.pending] == ["SU-003"]
    assert "Updated 1 of 3" in report.message
    # Already written codes stay; the rest were cleared and wait for a re-run
    assert [s["code"] for s in registry.students] == ["SU-001", None, None]


async def test_compact_rerun_finishes_after_partial_failure():
    registry = MemoryRegistry(_students("SU-004", "SU-005", "SU-006"))
    registry.fail_set_on = "SU-002"
    service = StudentCodeService(registry)
    await service.compact()

    registry.fail_set_on = None
    report = await service.compact()
    assert report.success
    assert [s["code"] for s in registry.students] == ["SU-001", "SU-002", "SU-003"]


async def test_compact_clear_failure_writes_nothing():
    registry = MemoryRegistry(_students("SU-003", "SU-004"))
    registry.fail_clear = True
    report = await StudentCodeService(registry).compact()

    assert not report.success
    assert report.updated == []
    assert len(report.pending) == 2
    assert registry.set_calls == []
    assert [s["code"] for s in registry.students] == ["SU-003", "SU-004"]


async def test_compact_empty_registry():
    report = await StudentCodeService(MemoryRegistry()).compact()
    assert report.success
    assert report.updated == []


# ---------------------------------------------------------------------------
# Registry selection
# ---------------------------------------------------------------------------

def test_get_registry_sql_requires_session():
    with pytest.raises(ValueError):
        get_registry(RegistryBackend.SQL)


def test_get_registry_sql():
    sentinel = object()
    registry = get_registry(RegistryBackend.SQL, sentinel)
    assert isinstance(registry, SQLUserRegistry)
    assert registry.db is sentinel


def test_get_registry_firestore_is_lazy():
    """Building the Firestore registry does not touch Firebase."""
    registry = get_registry(RegistryBackend.FIRESTORE)
    assert isinstance(registry, FirestoreUserRegistry)
    assert registry.collection_name == "users"
