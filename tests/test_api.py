"""
HTTP contract of the portal: role gates, status codes and payload shapes.
"""
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import pytest

from tests.conftest import API

pytestmark = pytest.mark.anyio


async def _register(client, role, email, secret_key=None, name=None):
    payload = {
        "name": name or email.split("@")[0].title(),
        "email": email,
        "password": "pa55word",
        "role": role,
    }
    if secret_key is not None:
        payload["secret_key"] = secret_key
    r = await client.post(f"{API}/auth/register", json=payload)
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def register(client):
    async def _do(role, email, secret_key=None, name=None):
        return await _register(client, role, email, secret_key, name)
    return _do


async def _create_exam(client, admin, course="Compilers", date=None):
    r = await client.post(
        f"{API}/exams/",
        json={"course_name": course, "date": (date or datetime.now(timezone.utc)).isoformat()},
        headers=admin,
    )
    assert r.status_code == 201, r.text
    return r.json()


async def test_register_rejects_privileged_role_without_key(client):
    r = await client.post(f"{API}/auth/register", json={
        "name": "Mallory", "email": "mallory@example.edu", "password": "x", "role": "ADMIN",
    })
    assert r.status_code == 401

    r = await client.post(f"{API}/auth/register", json={
        "name": "Mallory", "email": "mallory@example.edu", "password": "x",
        "role": "MARKER", "secret_key": "test-admin-key",
    })
    assert r.status_code == 401


async def test_register_duplicate_email(client, register):
    await register("STUDENT", "sam@example.edu")
    r = await client.post(f"{API}/auth/register", json={
        "name": "Sam", "email": "SAM@example.edu", "password": "x", "role": "STUDENT",
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "Email already registered"


async def test_login_and_me(client, register):
    await register("MARKER", "mark@example.edu", secret_key="test-marker-key", name="Mark")

    bad = await client.post(f"{API}/auth/login", json={"email": "mark@example.edu", "password": "nope"})
    assert bad.status_code == 401

    r = await client.post(f"{API}/auth/login", json={"email": "mark@example.edu", "password": "pa55word"})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["role"] == "MARKER"
    assert "password" not in body["user"]
    assert "token" in r.cookies

    me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "mark@example.edu"


async def test_requests_without_token_are_unauthorized(client):
    assert (await client.get(f"{API}/exams/")).status_code == 401
    bogus = {"Authorization": "Bearer not-a-jwt"}
    assert (await client.get(f"{API}/exams/", headers=bogus)).status_code == 401


async def test_role_gates(client, register):
    admin = await register("ADMIN", "admin@example.edu", secret_key="test-admin-key")
    student = await register("STUDENT", "stu@example.edu")
    marker = await register("MARKER", "mrk@example.edu", secret_key="test-marker-key")
    exam = await _create_exam(client, admin)

    r = await client.post(f"{API}/exams/", json={"course_name": "X", "date": "2026-01-01T09:00:00Z"}, headers=student)
    assert r.status_code == 403
    r = await client.post(f"{API}/exams/{exam['id']}/generate-codes", json={"count": 2}, headers=marker)
    assert r.status_code == 403
    r = await client.patch(f"{API}/exams/{exam['id']}/claim-code", json={"code_value": "abc"}, headers=admin)
    assert r.status_code == 403
    r = await client.post(f"{API}/marks/", json={"exam_id": exam["id"], "qr_code": "abc", "score": 5}, headers=student)
    assert r.status_code == 403
    r = await client.get(f"{API}/exams/{exam['id']}/reveal", headers=marker)
    assert r.status_code == 403
    r = await client.get(f"{API}/admin/stats", headers=student)
    assert r.status_code == 403


async def test_generate_codes_validation(client, register):
    admin = await register("ADMIN", "admin@example.edu", secret_key="test-admin-key")
    exam = await _create_exam(client, admin)

    for count in (0, 501):
        r = await client.post(f"{API}/exams/{exam['id']}/generate-codes", json={"count": count}, headers=admin)
        assert r.status_code == 400
    r = await client.post(f"{API}/exams/missing/generate-codes", json={"count": 3}, headers=admin)
    assert r.status_code == 404


async def test_full_flow(client, register):
    admin = await register("ADMIN", "admin@example.edu", secret_key="test-admin-key")
    s1 = await register("STUDENT", "s1@example.edu", name="Student One")
    s2 = await register("STUDENT", "s2@example.edu", name="Student Two")
    marker = await register("MARKER", "mrk@example.edu", secret_key="test-marker-key")
    exam = await _create_exam(client, admin, course="Operating Systems")
    assert exam["duration"] == 180

    r = await client.post(f"{API}/exams/{exam['id']}/generate-codes", json={"count": 3}, headers=admin)
    assert r.status_code == 200
    assert r.json()["count"] == 3
    values = [c["code_value"] for c in r.json()["codes"]]

    r = await client.patch(f"{API}/exams/{exam['id']}/claim-code", json={"code_value": values[0]}, headers=s1)
    assert r.status_code == 200
    assert r.json()["assigned_at"] is not None

    r = await client.patch(f"{API}/exams/{exam['id']}/claim-code", json={"code_value": values[0]}, headers=s2)
    assert r.status_code == 409
    assert r.json()["detail"] == "QR code already claimed"
    r = await client.patch(f"{API}/exams/{exam['id']}/claim-code", json={"code_value": "nope"}, headers=s2)
    assert r.status_code == 404
    r = await client.patch(f"{API}/exams/{exam['id']}/claim-code", json={"code_value": ""}, headers=s2)
    assert r.status_code == 400

    r = await client.post(f"{API}/marks/", json={"exam_id": exam["id"], "qr_code": values[1], "score": 50}, headers=marker)
    assert r.status_code == 400
    assert r.json()["detail"] == "QR code not claimed by any student"
    r = await client.post(f"{API}/marks/", json={"exam_id": exam["id"], "qr_code": values[0], "score": 101}, headers=marker)
    assert r.status_code == 400

    r = await client.get(f"{API}/admin/stats", headers=admin)
    assert r.json() == {"total_exams": 1, "active_exams": 1, "total_qr_codes": 3, "pending_reveals": 1}

    r = await client.post(f"{API}/marks/", json={"exam_id": exam["id"], "qr_code": values[0], "score": 92}, headers=marker)
    assert r.status_code == 200
    assert r.json()["score"] == 92

    r = await client.get(f"{API}/exams/{exam['id']}/reveal", headers=admin)
    assert r.json() == [
        {"student_name": "Student One", "student_email": "s1@example.edu", "qr_code": values[0], "score": 92.0}
    ]

    r = await client.get(f"{API}/admin/stats", headers=admin)
    assert r.json()["pending_reveals"] == 0

    r = await client.get(f"{API}/exams/", headers=s2)
    assert r.json()[0]["total_codes"] == 3
    assert r.json()[0]["claimed_codes"] == 1
    assert r.json()[0]["unclaimed_codes"] == 2

    r = await client.get(f"{API}/marks/{exam['id']}", headers=marker)
    assert [m["code_value"] for m in r.json()] == [values[0]]

    r = await client.get(f"{API}/student/exams", headers=s1)
    assert r.json()[0]["claimed_code"]["code_value"] == values[0]
    r = await client.get(f"{API}/student/exams", headers=s2)
    assert r.json()[0]["claimed_code"] is None

    r = await client.get(f"{API}/student/marks", headers=s1)
    assert r.json()[0]["score"] == 92
    assert r.json()[0]["exam"]["course_name"] == "Operating Systems"

    r = await client.get(f"{API}/exams/{exam['id']}/export-csv", headers=admin)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert 'filename="Operating Systems-results.csv"' in r.headers["content-disposition"]
    assert r.text.splitlines() == [
        "Student Name,Student Email,QR Code,Score",
        f"Student One,s1@example.edu,{values[0]},92",
    ]


async def test_student_exams_hide_old_exams(client, register):
    admin = await register("ADMIN", "admin@example.edu", secret_key="test-admin-key")
    student = await register("STUDENT", "stu@example.edu")
    await _create_exam(client, admin, course="Recent")
    await _create_exam(client, admin, course="Ancient", date=datetime.now(timezone.utc) - timedelta(days=30))

    r = await client.get(f"{API}/student/exams", headers=student)
    assert [e["course_name"] for e in r.json()] == ["Recent"]

    r = await client.get(f"{API}/admin/stats", headers=admin)
    assert r.json()["total_exams"] == 2
    assert r.json()["active_exams"] == 1


async def test_download_pdf(client, register):
    admin = await register("ADMIN", "admin@example.edu", secret_key="test-admin-key")
    exam = await _create_exam(client, admin, course="Graphics")

    r = await client.get(f"{API}/exams/{exam['id']}/download-pdf", headers=admin)
    assert r.status_code == 400

    await client.post(f"{API}/exams/{exam['id']}/generate-codes", json={"count": 10}, headers=admin)
    r = await client.get(f"{API}/exams/{exam['id']}/download-pdf", headers=admin)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.content.startswith(b"%PDF")
    assert 'filename="Graphics-qr-codes.pdf"' in r.headers["content-disposition"]

    r = await client.get(f"{API}/exams/missing/download-pdf", headers=admin)
    assert r.status_code == 404


async def test_export_with_non_latin_course_name(client, register):
    admin = await register("ADMIN", "admin@example.edu", secret_key="test-admin-key")
    exam = await _create_exam(client, admin, course="Математика")

    r = await client.get(f"{API}/exams/{exam['id']}/export-csv", headers=admin)
    assert r.status_code == 200
    disposition = r.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="')
    assert f"filename*=utf-8''{quote('Математика-results.csv')}" in disposition
    assert r.text.splitlines() == ["Student Name,Student Email,QR Code,Score"]
