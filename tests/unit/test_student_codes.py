"""Unit tests for student code allocation (pure logic, no DB)."""

import pytest

from app.utils.student_codes import (
    CodeChange,
    StudentEntry,
    allocate_next,
    find_gaps,
    format_student_code,
    is_valid_student_code,
    parse_student_code,
    reassign_all,
)


# ---------------------------------------------------------------------------
# Formatting and parsing
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "number,expected",
    [(1, "SU-001"), (42, "SU-042"), (999, "SU-999"), (1000, "SU-1000"), (12345, "SU-12345")],
)
def test_format_student_code(number, expected):
    assert format_student_code(number) == expected


@pytest.mark.parametrize(
    "code,expected",
    [
        ("SU-001", 1),
        ("SU-010", 10),
        ("SU-1000", 1000),
        ("SU-", None),
        ("SU-abc", None),
        ("SU-12a", None),
        ("su-001", None),
        ("ST-001", None),
        ("", None),
        (None, None),
        (17, None),
    ],
)
def test_parse_student_code(code, expected):
    assert parse_student_code(code) == expected


def test_is_valid_student_code():
    assert is_valid_student_code("SU-001")
    assert is_valid_student_code("SU-1000")
    assert not is_valid_student_code("SU-000")
    assert not is_valid_student_code("SU-01")
    assert not is_valid_student_code("SU-ABC")
    assert not is_valid_student_code(None)


# ---------------------------------------------------------------------------
# allocate_next
# ---------------------------------------------------------------------------

def test_allocate_next_empty_registry():
    assert allocate_next([]) == "SU-001"


def test_allocate_next_contiguous():
    assert allocate_next(["SU-001", "SU-002", "SU-003"]) == "SU-004"


def test_allocate_next_fills_lowest_gap():
    assert allocate_next(["SU-001", "SU-003", "SU-005"]) == "SU-002"


def test_allocate_next_first_slot_free():
    assert allocate_next(["SU-002", "SU-003"]) == "SU-001"


def test_allocate_next_order_independent():
    codes = ["SU-004", "SU-001", "SU-003", "SU-002"]
    assert allocate_next(codes) == allocate_next(sorted(codes)) == "SU-005"


def test_allocate_next_ignores_malformed_codes():
    assert allocate_next(["SU-001", "legacy-7", "SU-xyz", None, "", "SU-002"]) == "SU-003"


def test_allocate_next_only_malformed_codes():
    assert allocate_next(["abc", "SU-", "ST-001"]) == "SU-001"


def test_allocate_next_tolerates_duplicates():
    assert allocate_next(["SU-001", "SU-001", "SU-002"]) == "SU-003"


def test_allocate_next_grows_past_three_digits():
    codes = [format_student_code(n) for n in range(1, 1000)]
    assert allocate_next(codes) == "SU-1000"


def test_allocate_next_never_returns_a_taken_code():
    codes = ["SU-001", "SU-002", "SU-004", "SU-007"]
    result = allocate_next(codes)
    assert result not in codes
    assert is_valid_student_code(result)


def test_allocate_next_accepts_generator():
    assert allocate_next(c for c in ["SU-001"]) == "SU-002"


# ---------------------------------------------------------------------------
# find_gaps
# ---------------------------------------------------------------------------

def test_find_gaps_empty_registry():
    report = find_gaps([])
    assert report.total_students == 0
    assert report.highest_code is None
    assert report.gaps == []
    assert report.gap_count == 0


def test_find_gaps_contiguous():
    report = find_gaps(["SU-001", "SU-002", "SU-003"])
    assert report.highest_code == "SU-003"
    assert report.gaps == []


def test_find_gaps_lists_missing_slots_in_order():
    report = find_gaps(["SU-005", "SU-001", "SU-003"])
    assert report.total_students == 3
    assert report.highest_code == "SU-005"
    assert report.gaps == ["SU-002", "SU-004"]
    assert report.gap_count == 2


def test_find_gaps_counts_malformed_but_ignores_them():
    report = find_gaps(["SU-002", "broken"])
    assert report.total_students == 2
    assert report.highest_code == "SU-002"
    assert report.gaps == ["SU-001"]


def test_find_gaps_only_malformed():
    report = find_gaps(["nope"])
    assert report.highest_code is None
    assert report.gaps == []


def test_first_gap_matches_allocation():
    codes = ["SU-001", "SU-002", "SU-006"]
    assert find_gaps(codes).gaps[0] == allocate_next(codes)


# ---------------------------------------------------------------------------
# reassign_all
# ---------------------------------------------------------------------------

def test_reassign_all_empty():
    assert reassign_all([]) == []


def test_reassign_all_renumbers_by_position():
    students = [
        StudentEntry(id="a", student_code="SU-003", name="Ann"),
        StudentEntry(id="b", student_code="SU-007", name="Ben"),
        StudentEntry(id="c", student_code=None, name="Cal"),
    ]
    changes = reassign_all(students)
    assert changes == [
        CodeChange(id="a", old_code="SU-003", new_code="SU-001", name="Ann"),
        CodeChange(id="b", old_code="SU-007", new_code="SU-002", name="Ben"),
        CodeChange(id="c", old_code=None, new_code="SU-003", name="Cal"),
    ]


def test_reassign_all_skips_students_already_in_place():
    students = [
        StudentEntry(id="a", student_code="SU-001"),
        StudentEntry(id="b", student_code="SU-005"),
        StudentEntry(id="c", student_code="SU-003"),
    ]
    changes = reassign_all(students)
    assert [(c.id, c.new_code) for c in changes] == [("b", "SU-002")]


def test_reassign_all_is_idempotent():
    students = [
        StudentEntry(id="a", student_code="SU-010"),
        StudentEntry(id="b", student_code="junk"),
        StudentEntry(id="c", student_code="SU-001"),
    ]
    changes = reassign_all(students)
    by_id = {c.id: c.new_code for c in changes}
    applied = [StudentEntry(id=s.id, student_code=by_id.get(s.id, s.student_code)) for s in students]
    assert reassign_all(applied) == []


def test_reassign_all_produces_contiguous_codes():
    students = [StudentEntry(id=i, student_code=f"SU-{i * 3:03d}") for i in range(1, 6)]
    changes = reassign_all(students)
    assert len(changes) == 5
    final = {c.id: c.new_code for c in changes}
    codes = [final.get(s.id, s.student_code) for s in students]
    assert codes == [format_student_code(n) for n in range(1, 6)]
    assert find_gaps(codes).gaps == []
