"""
Student code allocation.

Student codes look like ``SU-001``: the literal prefix ``SU-`` followed by a
base-10 number zero-padded to at least three digits. Numbers above 999 simply
grow (``SU-1000``).

Allocation is first-fit: the next code is the smallest positive number not
already taken, so slots freed by deleted students are reused before the
sequence grows. Everything here is pure; reading the current codes and
persisting the chosen one belong to the caller.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

STUDENT_CODE_PREFIX = "SU-"
STUDENT_CODE_PATTERN = re.compile(r"^SU-\d{3,}$")

_SUFFIX_PATTERN = re.compile(r"^\d+$")


@dataclass(frozen=True)
class StudentEntry:
    """A student as seen by compaction: id, current code, registration time."""
    id: Any
    student_code: Optional[str]
    name: Optional[str] = None


@dataclass(frozen=True)
class CodeChange:
    id: Any
    old_code: Optional[str]
    new_code: str
    name: Optional[str] = None


@dataclass
class GapReport:
    total_students: int
    highest_code: Optional[str]
    gaps: List[str] = field(default_factory=list)

    @property
    def gap_count(self) -> int:
        return len(self.gaps)


def format_student_code(number: int) -> str:
    """Format a slot number as ``SU-NNN``."""
    return f"{STUDENT_CODE_PREFIX}{number:03d}"


def parse_student_code(code: Any) -> Optional[int]:
    """
    Return the numeric suffix of a student code, or None if it is malformed.

    Only the ``SU-`` prefix and a run of ASCII digits are accepted. Legacy or
    hand-edited values come back as None instead of raising.
    """
    if not isinstance(code, str) or not code.startswith(STUDENT_CODE_PREFIX):
        return None
    suffix = code[len(STUDENT_CODE_PREFIX):]
    if not _SUFFIX_PATTERN.match(suffix):
        return None
    return int(suffix)


def is_valid_student_code(code: Any) -> bool:
    """True for codes matching ``^SU-\\d{3,}$`` with a positive number."""
    if not isinstance(code, str) or not STUDENT_CODE_PATTERN.match(code):
        return False
    return parse_student_code(code) > 0


def _parsed_numbers(existing_codes: Iterable[Any]) -> List[int]:
    numbers = (parse_student_code(code) for code in existing_codes)
    return sorted(n for n in numbers if n is not None)


def allocate_next(existing_codes: Iterable[Any]) -> str:
    """
    Compute the next student code to hand out.

    Args:
        existing_codes: Codes currently in use, in any order (may be empty)

    Returns:
        The smallest positive slot not in use, formatted as ``SU-NNN``
    """
    next_number = 1
    for value in _parsed_numbers(existing_codes):
        if value > next_number:
            break
        next_number = max(next_number, value + 1)
    return format_student_code(next_number)


def find_gaps(existing_codes: Iterable[Any]) -> GapReport:
    """
    List every free slot below the highest code in use.

    An empty registry (or one with no parseable code) has no highest code and
    no gaps.
    """
    codes = list(existing_codes)
    numbers = _parsed_numbers(codes)
    if not numbers:
        return GapReport(total_students=len(codes), highest_code=None, gaps=[])

    taken = set(numbers)
    highest = numbers[-1]
    gaps = [format_student_code(n) for n in range(1, highest) if n not in taken]
    return GapReport(
        total_students=len(codes),
        highest_code=format_student_code(highest),
        gaps=gaps,
    )


def reassign_all(students: Sequence[StudentEntry]) -> List[CodeChange]:
    """
    Renumber students ``SU-001``, ``SU-002``, ... in the order given.

    Args:
        students: Students sorted by registration time, oldest first

    Returns:
        Only the students whose code changes. Running again after applying the
        result yields an empty list.
    """
    changes: List[CodeChange] = []
    for position, student in enumerate(students, start=1):
        new_code = format_student_code(position)
        if student.student_code != new_code:
            changes.append(
                CodeChange(
                    id=student.id,
                    old_code=student.student_code,
                    new_code=new_code,
                    name=student.name,
                )
            )
    return changes
