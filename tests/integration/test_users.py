"""Integration tests: user registration, student codes and role changes."""

import re

import pytest
from httpx import AsyncClient

from tests.conftest import requires_db

pytestmark = requires_db

CODE_RE = re.compile(r"^SU-\d{3,}$")


async def test_register_student_gets_code(register_user, unique_suffix: str):
    data = await register_user(unique_suffix)
    assert data["role"] == "student"
    assert data["status"] == "potential"
    assert data["firebase_uid"] == f"fb-{unique_suffix}"
    assert CODE_RE.match(data["studentCode"])
    assert "student_code" not in data


async def test_registered_students_get_distinct_codes(register_user, unique_suffix: str):
    first = await register_user(f"{unique_suffix}a")
    second = await register_user(f"{unique_suffix}b")
    assert first["studentCode"] != second["studentCode"]


async def test_register_duplicate_email_rejected(
    async_client: AsyncClient, api_base: str, register_user, unique_suffix: str
):
    await register_user(unique_suffix)
    resp = await async_client.post(
        f"{api_base}/users",
        json={
            "firebase_uid": f"fb-other-{unique_suffix}",
            "email": f"user_{unique_suffix}@test.example.com",
            "name": "Dup",
            "username": f"dup_{unique_suffix}",
        },
    )
    assert resp.status_code == 400
    assert "Email" in resp.json()["detail"]


async def test_register_duplicate_firebase_uid_rejected(
    async_client: AsyncClient, api_base: str, register_user, unique_suffix: str
):
    await register_user(unique_suffix)
    resp = await async_client.post(
        f"{api_base}/users",
        json={
            "firebase_uid": f"fb-{unique_suffix}",
            "email": f"other_{unique_suffix}@test.example.com",
            "name": "Dup",
            "username": f"other_{unique_suffix}",
        },
    )
    assert resp.status_code == 400


async def test_anonymous_cannot_register_teacher(
    async_client: AsyncClient, api_base: str, admin_user: dict, unique_suffix: str
):
    resp = await async_client.post(
        f"{api_base}/users",
        json={
            "firebase_uid": f"fb-t-{unique_suffix}",
            "email": f"t_{unique_suffix}@test.example.com",
            "name": "Teacher",
            "username": f"t_{unique_suffix}",
            "role": "teacher",
        },
    )
    assert resp.status_code == 403


async def test_admin_registers_teacher_without_code(register_user, admin_headers: dict, unique_suffix: str):
    data = await register_user(unique_suffix, headers=admin_headers, role="teacher", status="active")
    assert data["role"] == "teacher"
    assert data["studentCode"] is None


async def test_check_email_and_username(
    async_client: AsyncClient, api_base: str, register_user, unique_suffix: str
):
    await register_user(unique_suffix)
    resp = await async_client.get(f"{api_base}/users/check-email/user_{unique_suffix}@test.example.com")
    assert resp.json()["data"]["available"] is False
    resp = await async_client.get(f"{api_base}/users/check-username/free_{unique_suffix}")
    assert resp.json()["data"]["available"] is True


async def test_potential_student_registration_creates_lead(
    async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, unique_suffix: str
):
    await register_user(unique_suffix)
    resp = await async_client.get(
        f"{api_base}/potential-students",
        headers=admin_headers,
        params={"source": "admin_registration", "page_size": 100},
    )
    assert resp.status_code == 200, resp.text
    emails = [lead["email"] for lead in resp.json()["data"]]
    assert f"user_{unique_suffix}@test.example.com" in emails


async def test_deleted_student_code_is_reused(
    async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, unique_suffix: str
):
    student = await register_user(unique_suffix)
    resp = await async_client.delete(f"{api_base}/users/{student['id']}", headers=admin_headers)
    assert resp.status_code == 200, resp.text

    resp = await async_client.get(f"{api_base}/admin/student-codes/next", headers=admin_headers)
    assert resp.json()["data"]["next_code"] == student["studentCode"]

    replacement = await register_user(f"{unique_suffix}r")
    assert replacement["studentCode"] == student["studentCode"]


async def test_role_change_clears_and_restores_code(
    async_client: AsyncClient, api_base: str, admin_headers: dict, register_user, unique_suffix: str
):
    student = await register_user(unique_suffix)
    url = f"{api_base}/users/{student['id']}"

    resp = await async_client.put(url, headers=admin_headers, json={"role": "staff"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["student_code"] is None

    resp = await async_client.put(url, headers=admin_headers, json={"role": "student"})
    assert resp.status_code == 200, resp.text
    assert CODE_RE.match(resp.json()["data"]["student_code"])


async def test_student_login_permissions_and_profile(
    async_client: AsyncClient, api_base: str, register_user, login_headers, unique_suffix: str
):
    student = await register_user(unique_suffix, status="active")
    headers = await login_headers(f"user_{unique_suffix}@test.example.com")

    resp = await async_client.get(f"{api_base}/auth/permissions", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["role"] == "student"
    assert data["student_code"] == student["studentCode"]
    assert data["permissions"]["can_submit_assignments"] is True

    resp = await async_client.put(f"{api_base}/auth/profile", headers=headers, json={"english_name": "Sunny"})
    assert resp.status_code == 200
    assert resp.json()["data"]["english_name"] == "Sunny"
    assert resp.json()["data"]["student_code"] == student["studentCode"]


async def test_potential_student_cannot_log_in(
    async_client: AsyncClient, api_base: str, register_user, unique_suffix: str
):
    await register_user(unique_suffix)
    resp = await async_client.post(
        f"{api_base}/auth/login",
        json={"email": f"user_{unique_suffix}@test.example.com", "password": "TestPassword123!"},
    )
    assert resp.status_code == 401


async def test_refresh_token(async_client: AsyncClient, api_base: str, admin_user: dict):
    resp = await async_client.post(
        f"{api_base}/auth/login",
        json={"email": admin_user["email"], "password": admin_user["password"]},
    )
    refresh = resp.json()["data"]["refresh_token"]

    resp = await async_client.post(f"{api_base}/auth/refresh", json={"refresh_token": refresh})
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "admin"


async def test_student_cannot_list_users(
    async_client: AsyncClient, api_base: str, register_user, login_headers, unique_suffix: str
):
    await register_user(unique_suffix, status="active")
    headers = await login_headers(f"user_{unique_suffix}@test.example.com")
    resp = await async_client.get(f"{api_base}/users", headers=headers)
    assert resp.status_code == 403


async def test_admin_lists_users_with_meta(async_client: AsyncClient, api_base: str, admin_headers: dict):
    resp = await async_client.get(f"{api_base}/users", headers=admin_headers, params={"role": "admin"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["meta"]["total"] >= 1
    assert all(u["role"] == "admin" for u in body["data"])


async def test_firebase_login_links_existing_user(
    async_client: AsyncClient, api_base: str, admin_headers: dict, monkeypatch, unique_suffix: str
):
    """A converted student (no UID yet) is linked on first Firebase sign-in."""
    from app.api.v1.endpoints import auth as auth_endpoints

    lead = await async_client.post(
        f"{api_base}/potential-students",
        headers=admin_headers,
        json={"name": "Linked Lead", "email": f"link_{unique_suffix}@test.example.com"},
    )
    assert lead.status_code == 201, lead.text
    resp = await async_client.post(
        f"{api_base}/potential-students/{lead.json()['data']['id']}/convert", headers=admin_headers
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["firebase_uid"] is None

    monkeypatch.setattr(
        auth_endpoints,
        "verify_firebase_token",
        lambda token: {"uid": f"fb-link-{unique_suffix}", "email": f"link_{unique_suffix}@test.example.com"},
    )
    resp = await async_client.post(f"{api_base}/auth/firebase-login", json={"id_token": "token"})
    assert resp.status_code == 200, resp.text
    user = resp.json()["data"]["user"]
    assert user["firebase_uid"] == f"fb-link-{unique_suffix}"
    assert CODE_RE.match(user["student_code"])
