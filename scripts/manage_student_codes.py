#!/usr/bin/env python3
"""
Student code maintenance without going through the API.

Usage:
  python scripts/manage_student_codes.py generate   # show the next free code
  python scripts/manage_student_codes.py gaps       # list unused codes below the highest
  python scripts/manage_student_codes.py reassign   # renumber SU-001.. by registration order
  python scripts/manage_student_codes.py gaps --backend firestore

Requires DATABASE_URL and SECRET_KEY in .env (or export). The firestore
backend also needs FIREBASE_CREDENTIALS_PATH or FIREBASE_PROJECT_ID.
"""
import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(_root, ".env"))

# Add project root to path
sys.path.insert(0, _root)

from app.core.logging import setup_logging  # noqa: E402
from app.database import AsyncSessionLocal, close_db  # noqa: E402
from app.services.student_code_service import (  # noqa: E402
    RegistryBackend,
    StudentCodeService,
    get_registry,
)


async def generate(service: StudentCodeService) -> int:
    next_code, total = await service.preview_next_code()
    print(f"Students with a code: {total}")
    print(f"Next student code:    {next_code}")
    return 0


async def gaps(service: StudentCodeService) -> int:
    report = await service.gap_report()
    print(f"Students with a code: {report.total_students}")
    print(f"Highest code:         {report.highest_code or '-'}")
    if not report.gaps:
        print("No gaps.")
        return 0
    print(f"Gaps ({report.gap_count}): {', '.join(report.gaps)}")
    return 0


async def reassign(service: StudentCodeService) -> int:
    report = await service.compact()
    for change in report.updated:
        print(f"  {change.old_code or '(none)':>10} -> {change.new_code}  {change.name or change.id}")
    for change in report.failed:
        print(f"  FAILED {change.old_code or '(none)'} -> {change.new_code}  {change.name or change.id}")
    if report.pending:
        print(f"  {len(report.pending)} change(s) not attempted")
    print(report.message)
    return 0 if report.success else 1


COMMANDS = {
    "generate": generate,
    "gaps": gaps,
    "reassign": reassign,
}


async def run(command: str, backend: RegistryBackend) -> int:
    try:
        async with AsyncSessionLocal() as db:
            service = StudentCodeService(get_registry(backend, db))
            return await COMMANDS[command](service)
    finally:
        await close_db()


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage SU-NNN student codes")
    parser.add_argument("command", choices=sorted(COMMANDS))
    parser.add_argument(
        "--backend",
        choices=[b.value for b in RegistryBackend],
        default=RegistryBackend.SQL.value,
        help="Registry holding the codes (default: sql)",
    )
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    setup_logging(args.log_level)
    try:
        exit_code = asyncio.run(run(args.command, RegistryBackend(args.backend)))
    except RuntimeError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
