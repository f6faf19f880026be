"""
Student Code Service

Reads and writes student codes through a ``UserRegistry`` so the same
allocation, gap-report and compaction logic runs against PostgreSQL or the
Firestore ``users`` collection.
"""

import asyncio
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Protocol, Tuple, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.logging import get_logger
from app.models.enums import UserRole
from app.models.user import User
from app.utils.student_codes import (
    CodeChange,
    GapReport,
    StudentEntry,
    allocate_next,
    find_gaps,
    reassign_all,
)

logger = get_logger(__name__)

T = TypeVar("T")

# Firestore batched writes are capped at 500 operations
FIRESTORE_BATCH_LIMIT = 500


class StudentCodeConflict(Exception):
    """The chosen code is already held by another student"""

    def __init__(self, code: str):
        super().__init__(f"Student code {code} is already taken")
        self.code = code


class RegistryBackend(str, enum.Enum):
    SQL = "sql"
    FIRESTORE = "firestore"


class UserRegistry(Protocol):
    """
    Store holding each student's code.

    Every write is durable when the coroutine returns. ``set_student_code``
    raises ``StudentCodeConflict`` if another student already holds the code.
    """

    async def list_student_codes(self) -> List[str]: ...

    async def list_students_by_creation(self) -> List[StudentEntry]: ...

    async def set_student_code(self, student_id: Any, code: str) -> None: ...

    async def clear_student_codes(self, student_ids: Iterable[Any]) -> None: ...


class SQLUserRegistry:
    """Registry over the ``users`` table; commits after every write"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_student_codes(self) -> List[str]:
        result = await self.db.execute(
            select(User.student_code).where(
                User.role == UserRole.STUDENT,
                User.student_code.isnot(None),
            )
        )
        return [row[0] for row in result.all()]

    async def list_students_by_creation(self) -> List[StudentEntry]:
        result = await self.db.execute(
            select(User.id, User.student_code, User.name)
            .where(User.role == UserRole.STUDENT)
            .order_by(User.created_at.asc(), User.id.asc())
        )
        return [StudentEntry(id=row.id, student_code=row.student_code, name=row.name) for row in result.all()]

    async def set_student_code(self, student_id: Any, code: str) -> None:
        try:
            await self.db.execute(
                update(User).where(User.id == student_id).values(student_code=code)
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise StudentCodeConflict(code) from e
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def clear_student_codes(self, student_ids: Iterable[Any]) -> None:
        ids = list(student_ids)
        if not ids:
            return
        try:
            await self.db.execute(
                update(User).where(User.id.in_(ids)).values(student_code=None)
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise


class FirestoreUserRegistry:
    """
    Registry over a Firestore collection whose documents carry ``role``,
    ``studentCode``, ``name`` and ``createdAt``.

    The Firestore client is blocking, so every call runs in a worker thread.
    Firestore has no unique index; ``set_student_code`` checks for another
    holder before writing.
    """

    def __init__(self, client: Any = None, collection: str = "users"):
        self._client = client
        self.collection_name = collection

    def _collection(self):
        if self._client is None:
            from app.core.firebase import get_firestore_client

            self._client = get_firestore_client()
        return self._client.collection(self.collection_name)

    def _student_docs(self) -> list:
        return list(self._collection().where("role", "==", UserRole.STUDENT.value).stream())

    async def list_student_codes(self) -> List[str]:
        docs = await asyncio.to_thread(self._student_docs)
        codes = []
        for doc in docs:
            code = (doc.to_dict() or {}).get("studentCode")
            if code:
                codes.append(code)
        return codes

    async def list_students_by_creation(self) -> List[StudentEntry]:
        docs = await asyncio.to_thread(self._student_docs)

        def sort_key(doc) -> Tuple[bool, float, str]:
            created = (doc.to_dict() or {}).get("createdAt")
            if isinstance(created, datetime):
                return (False, created.timestamp(), doc.id)
            return (True, 0.0, doc.id)

        entries = []
        for doc in sorted(docs, key=sort_key):
            data = doc.to_dict() or {}
            entries.append(StudentEntry(id=doc.id, student_code=data.get("studentCode"), name=data.get("name")))
        return entries

    def _set_code(self, student_id: str, code: str) -> None:
        holders = self._collection().where("studentCode", "==", code).limit(2).stream()
        if any(doc.id != student_id for doc in holders):
            raise StudentCodeConflict(code)
        self._collection().document(student_id).update({"studentCode": code})

    async def set_student_code(self, student_id: Any, code: str) -> None:
        await asyncio.to_thread(self._set_code, str(student_id), code)

    def _clear_codes(self, student_ids: List[str]) -> None:
        collection = self._collection()
        for start in range(0, len(student_ids), FIRESTORE_BATCH_LIMIT):
            batch = self._client.batch()
            for student_id in student_ids[start:start + FIRESTORE_BATCH_LIMIT]:
                batch.update(collection.document(student_id), {"studentCode": None})
            batch.commit()

    async def clear_student_codes(self, student_ids: Iterable[Any]) -> None:
        ids = [str(i) for i in student_ids]
        if ids:
            await asyncio.to_thread(self._clear_codes, ids)


@dataclass
class CompactionReport:
    """
    Outcome of a compaction run.

    ``failed`` holds the change whose write raised; ``pending`` the changes
    never attempted. Those students have no code until compaction is re-run.
    """
    updated: List[CodeChange] = field(default_factory=list)
    failed: List[CodeChange] = field(default_factory=list)
    pending: List[CodeChange] = field(default_factory=list)
    message: str = ""

    @property
    def success(self) -> bool:
        return not self.failed and not self.pending


def get_registry(backend: RegistryBackend, db: Optional[AsyncSession] = None) -> UserRegistry:
    if backend == RegistryBackend.FIRESTORE:
        return FirestoreUserRegistry()
    if db is None:
        raise ValueError("SQL registry requires a database session")
    return SQLUserRegistry(db)


class StudentCodeService:
    """Allocation, gap reporting and compaction over one registry"""

    def __init__(self, registry: UserRegistry, max_retries: Optional[int] = None):
        self.registry = registry
        self.max_retries = settings.STUDENT_CODE_MAX_RETRIES if max_retries is None else max_retries
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")

    async def preview_next_code(self) -> Tuple[str, int]:
        """
        Code the next registration would receive, without reserving it.

        Returns:
            (next_code, number of students currently holding a code)
        """
        codes = await self.registry.list_student_codes()
        return allocate_next(codes), len(codes)

    async def gap_report(self) -> GapReport:
        codes = await self.registry.list_student_codes()
        return find_gaps(codes)

    async def allocate_with_retry(self, create: Callable[[str], Awaitable[T]]) -> T:
        """
        Allocate a code and hand it to ``create``, which persists the record.

        If ``create`` raises ``StudentCodeConflict`` (another writer took the
        code first) the registry is re-read and allocation repeated, up to
        ``max_retries`` extra attempts. The last conflict propagates.
        """
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            code = allocate_next(await self.registry.list_student_codes())
            try:
                return await create(code)
            except StudentCodeConflict:
                if attempt >= attempts:
                    logger.warning(
                        "Student code allocation conflict, giving up",
                        extra={"code": code, "attempts": attempts},
                    )
                    raise
                logger.info("Student code conflict, retrying", extra={"code": code, "attempt": attempt})
        raise AssertionError("unreachable")

    async def compact(self) -> CompactionReport:
        """
        Renumber every student ``SU-001..`` by registration order.

        Codes of the students that change are cleared first so no write
        collides with a code still held by a later student. Stops at the
        first failed write; nothing already written is undone.
        """
        students = await self.registry.list_students_by_creation()
        changes = reassign_all(students)
        if not changes:
            return CompactionReport(message="All student codes are already sequential")

        logger.info("Compacting student codes", extra={"students": len(students), "changes": len(changes)})

        try:
            await self.registry.clear_student_codes([c.id for c in changes])
        except Exception as e:
            logger.error(f"Failed to clear student codes before compaction: {e}", exc_info=True)
            return CompactionReport(
                pending=changes,
                message=f"Compaction aborted before any update: {e}",
            )

        updated: List[CodeChange] = []
        for index, change in enumerate(changes):
            try:
                await self.registry.set_student_code(change.id, change.new_code)
            except Exception as e:
                logger.error(
                    f"Compaction stopped at {change.new_code}: {e}",
                    extra={"student_id": str(change.id)},
                    exc_info=True,
                )
                return CompactionReport(
                    updated=updated,
                    failed=[change],
                    pending=changes[index + 1:],
                    message=(
                        f"Updated {len(updated)} of {len(changes)} student codes; "
                        "re-run compaction to finish"
                    ),
                )
            updated.append(change)

        logger.info("Student codes compacted", extra={"updated": len(updated)})
        return CompactionReport(updated=updated, message=f"Reassigned {len(updated)} student codes")
