"""Integration tests: student code administration endpoints."""

import pytest
from httpx import AsyncClient

from app.config import settings
from app.services.student_code_service import SQLUserRegistry
from tests.conftest import requires_db

pytestmark = requires_db


async def test_next_code_matches_next_registration(
    async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, unique_suffix: str
):
    resp = await async_client.get(f"{api_base}/admin/student-codes/next", headers=admin_headers)
    assert resp.status_code == 200, resp.text
    preview = resp.json()["data"]

    student = await register_user(unique_suffix)
    assert student["studentCode"] == preview["next_code"]


async def test_preview_does_not_reserve(async_client: AsyncClient, api_base: str, admin_headers: dict):
    first = await async_client.get(f"{api_base}/admin/student-codes/next", headers=admin_headers)
    second = await async_client.get(f"{api_base}/admin/student-codes/next", headers=admin_headers)
    assert first.json()["data"] == second.json()["data"]


async def test_gap_report_lists_deleted_code(
    async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, unique_suffix: str
):
    await register_user(f"{unique_suffix}1")
    middle = await register_user(f"{unique_suffix}2")
    await register_user(f"{unique_suffix}3")
    resp = await async_client.delete(f"{api_base}/users/{middle['id']}", headers=admin_headers)
    assert resp.status_code == 200

    resp = await async_client.get(f"{api_base}/admin/student-codes/gaps", headers=admin_headers)
    assert resp.status_code == 200, resp.text
    report = resp.json()["data"]
    assert middle["studentCode"] in report["gaps"]
    assert report["gap_count"] == len(report["gaps"])


async def test_reassign_compacts_and_is_idempotent(
    async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, unique_suffix: str
):
    await register_user(f"{unique_suffix}1")
    doomed = await register_user(f"{unique_suffix}2")
    await register_user(f"{unique_suffix}3")
    await async_client.delete(f"{api_base}/users/{doomed['id']}", headers=admin_headers)

    resp = await async_client.post(f"{api_base}/admin/student-codes/reassign", headers=admin_headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["failed"] == []
    assert body["data"]["pending"] == []

    gaps = await async_client.get(f"{api_base}/admin/student-codes/gaps", headers=admin_headers)
    assert gaps.json()["data"]["gaps"] == []

    again = await async_client.post(f"{api_base}/admin/student-codes/reassign", headers=admin_headers)
    assert again.json()["success"] is True
    assert again.json()["data"]["updated"] == []


async def test_reassign_is_logged(async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, unique_suffix: str):
    await register_user(f"{unique_suffix}1")
    doomed = await register_user(f"{unique_suffix}2")
    await register_user(f"{unique_suffix}3")
    await async_client.delete(f"{api_base}/users/{doomed['id']}", headers=admin_headers)
    await async_client.post(f"{api_base}/admin/student-codes/reassign", headers=admin_headers)

    resp = await async_client.get(
        f"{api_base}/change-logs/entity/student/student-codes", headers=admin_headers
    )
    assert resp.status_code == 200, resp.text
    assert any(log["action"] == "reassign" for log in resp.json()["data"])


async def test_student_codes_admin_only(
    async_client: AsyncClient, api_base: str, register_user, login_headers, unique_suffix: str
):
    await register_user(unique_suffix, status="active")
    headers = await login_headers(f"user_{unique_suffix}@test.example.com")
    for method, path in (
        ("GET", "/admin/student-codes/next"),
        ("GET", "/admin/student-codes/gaps"),
        ("POST", "/admin/student-codes/reassign"),
    ):
        resp = await async_client.request(method, f"{api_base}{path}", headers=headers)
        assert resp.status_code == 403, path


@pytest.mark.skipif(settings.firebase_enabled, reason="Firebase is configured")
async def test_firestore_backend_unavailable_without_firebase(
    async_client: AsyncClient, api_base: str, admin_headers: dict
):
    resp = await async_client.get(
        f"{api_base}/admin/student-codes/next",
        headers=admin_headers,
        params={"backend": "firestore"},
    )
    assert resp.status_code == 503


async def test_unknown_backend_rejected(async_client: AsyncClient, api_base: str, admin_headers: dict):
    resp = await async_client.get(
        f"{api_base}/admin/student-codes/next",
        headers=admin_headers,
        params={"backend": "mongo"},
    )
    assert resp.status_code == 422


def _stale_codes(monkeypatch, hidden_code: str, times: int) -> list:
    """Make the first ``times`` registry reads miss ``hidden_code``, as if read before it was taken."""
    original = SQLUserRegistry.list_student_codes
    reads = []

    async def stale(self):
        codes = await original(self)
        reads.append(codes)
        if len(reads) <= times:
            return [code for code in codes if code != hidden_code]
        return codes

    monkeypatch.setattr(SQLUserRegistry, "list_student_codes", stale)
    return reads


async def test_registration_retries_after_code_collision(
    async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, monkeypatch, unique_suffix: str
):
    taken = (await register_user(f"{unique_suffix}a"))["studentCode"]
    resp = await async_client.get(f"{api_base}/admin/student-codes/next", headers=admin_headers)
    expected = resp.json()["data"]["next_code"]

    reads = _stale_codes(monkeypatch, taken, times=1)
    second = await register_user(f"{unique_suffix}b")

    assert len(reads) == 2
    assert second["studentCode"] == expected
    assert second["studentCode"] != taken


async def test_registration_conflict_after_retries_exhausted(
    async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, monkeypatch, unique_suffix: str
):
    taken = (await register_user(f"{unique_suffix}a"))["studentCode"]
    reads = _stale_codes(monkeypatch, taken, times=settings.STUDENT_CODE_MAX_RETRIES + 1)

    resp = await async_client.post(
        f"{api_base}/users",
        json={
            "firebase_uid": f"fb-{unique_suffix}b",
            "email": f"user_{unique_suffix}b@test.example.com",
            "name": "Unlucky",
            "username": f"user_{unique_suffix}b",
        },
    )
    assert resp.status_code == 409, resp.text
    assert resp.json()["detail"] == "Student code allocation conflict, please retry"
    assert len(reads) == settings.STUDENT_CODE_MAX_RETRIES + 1

    resp = await async_client.get(f"{api_base}/users/check-email/user_{unique_suffix}b@test.example.com")
    assert resp.json()["data"]["available"] is True
