"""HTTP-level tests: authentication, role checks, error mapping and cascades."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from sqlalchemy.exc import OperationalError

from classroom.config.settings import settings
from classroom.main import create_app
from classroom.models import Role
from classroom.services import ClassStore, IdentityStore


def _sign_up(client: TestClient, name: str, email: str, role: str = "student") -> dict:
    response = client.post(
        "/api/auth/sign-up/email",
        json={"name": name, "email": email, "password": "password123", "role": role},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def admin_headers(make_user, login) -> dict[str, str]:
    return login(make_user(Role.ADMIN).id)


@pytest.fixture
def catalog(client: TestClient, admin_headers) -> dict:
    department = client.post(
        "/api/departments/",
        json={"code": "CS", "name": "Computer Science"},
        headers=admin_headers,
    )
    assert department.status_code == 201, department.text
    subject = client.post(
        "/api/subjects/",
        json={"departmentId": department.json()["id"], "code": "CS101", "name": "Intro"},
        headers=admin_headers,
    )
    assert subject.status_code == 201, subject.text
    return {"department": department.json(), "subject": subject.json()}


def test_public_endpoints(client: TestClient):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").status_code == 200
    assert client.get("/metrics").status_code == 200


def test_protected_routes_require_a_session(client: TestClient):
    response = client.get("/api/departments/")

    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"

    response = client.get("/api/departments/", headers=_bearer("bogus"))
    assert response.status_code == 401


def test_sign_up_sign_in_and_sign_out(client: TestClient):
    signed_up = _sign_up(client, "Ada", "ada@school.edu")
    assert signed_up["user"]["role"] == "student"
    assert signed_up["user"]["emailVerified"] is False

    duplicate = client.post(
        "/api/auth/sign-up/email",
        json={"name": "Ada", "email": "ADA@school.edu", "password": "password123"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "duplicate_email"

    wrong = client.post(
        "/api/auth/sign-in/email",
        json={"email": "ada@school.edu", "password": "not-it"},
    )
    assert wrong.status_code == 401
    assert wrong.json()["code"] == "invalid_credentials"

    signed_in = client.post(
        "/api/auth/sign-in/email",
        json={"email": "ada@school.edu", "password": "password123"},
    )
    assert signed_in.status_code == 200
    token = signed_in.json()["token"]
    assert token != signed_up["token"]

    current = client.get("/api/auth/get-session", headers=_bearer(token))
    assert current.json()["user"]["email"] == "ada@school.edu"

    me = client.get("/api/users/me", headers=_bearer(token))
    assert me.json()["id"] == signed_up["user"]["id"]

    assert client.post("/api/auth/sign-out", headers=_bearer(token)).json() == {
        "success": True
    }
    assert client.get("/api/auth/get-session", headers=_bearer(token)).json() is None
    # The session opened at sign-up is independent and still valid.
    assert client.get("/api/users/me", headers=_bearer(signed_up["token"])).status_code == 200


def test_sign_up_cannot_choose_admin(client: TestClient):
    response = client.post(
        "/api/auth/sign-up/email",
        json={
            "name": "Mallory",
            "email": "mallory@school.edu",
            "password": "password123",
            "role": "admin",
        },
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_input"


def test_email_verification(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "debug", True)
    _sign_up(client, "Linus", "linus@school.edu")

    issued = client.post(
        "/api/auth/send-verification-email", json={"email": "linus@school.edu"}
    )
    assert issued.status_code == 202
    value = issued.json()["value"]

    mismatch = client.post(
        "/api/auth/verify-email", json={"email": "linus@school.edu", "value": "nope"}
    )
    assert mismatch.status_code == 400
    assert mismatch.json()["code"] == "verification_mismatch"

    verified = client.post(
        "/api/auth/verify-email", json={"email": "linus@school.edu", "value": value}
    )
    assert verified.status_code == 200
    assert verified.json()["emailVerified"] is True


def test_catalog_writes_require_admin(client: TestClient):
    student = _sign_up(client, "Sam", "sam@school.edu")

    response = client.post(
        "/api/departments/",
        json={"code": "CS", "name": "Computer Science"},
        headers=_bearer(student["token"]),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


def test_non_json_body_is_rejected(client: TestClient, admin_headers):
    response = client.post(
        "/api/departments/",
        content="code=CS&name=Computer+Science",
        headers={"Content-Type": "application/x-www-form-urlencoded", **admin_headers},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_body"


def test_validation_errors_map_to_bad_request(client: TestClient, admin_headers):
    response = client.post("/api/departments/", json={"name": "No code"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_input"


def test_duplicate_department_code(client: TestClient, admin_headers, catalog):
    response = client.post(
        "/api/departments/",
        json={"code": "CS", "name": "Again"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["code"] == "duplicate_code"


def test_subject_list_pagination(client: TestClient, admin_headers, catalog):
    department_id = catalog["department"]["id"]
    for n in range(2, 6):
        client.post(
            "/api/subjects/",
            json={"departmentId": department_id, "code": f"CS10{n}", "name": f"Course {n}"},
            headers=admin_headers,
        )

    response = client.get(
        "/api/subjects/",
        params={"departmentId": department_id, "page": 2, "limit": 2},
        headers=admin_headers,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 5, "totalPages": 3}
    assert len(body["data"]) == 2
    assert body["data"][0]["department"]["code"] == "CS"


def test_unknown_resources_are_not_found(client: TestClient, admin_headers):
    assert client.get("/api/subjects/999", headers=admin_headers).json()["code"] == (
        "unknown_subject"
    )
    response = client.get("/api/classes/999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "unknown_class"


def test_class_enrollment_flow(client: TestClient, admin_headers, catalog):
    teacher = _sign_up(client, "Tess", "tess@school.edu", role="teacher")
    first = _sign_up(client, "Stu", "stu@school.edu")
    second = _sign_up(client, "Sue", "sue@school.edu")

    created = client.post(
        "/api/classes/",
        json={
            "subjectId": catalog["subject"]["id"],
            "name": "Morning section",
            "capacity": 1,
            "schedules": [{"day": "Monday", "startTime": "09:00", "endTime": "10:00"}],
        },
        headers=_bearer(teacher["token"]),
    )
    assert created.status_code == 201, created.text
    klass = created.json()
    assert klass["teacherId"] == teacher["user"]["id"]
    assert klass["schedules"][0]["day"] == "Monday"

    # Students cannot create classes.
    forbidden = client.post(
        "/api/classes/",
        json={"subjectId": catalog["subject"]["id"], "name": "Nope"},
        headers=_bearer(first["token"]),
    )
    assert forbidden.status_code == 403

    joined = client.post(
        "/api/classes/join",
        json={"inviteCode": klass["inviteCode"].lower()},
        headers=_bearer(first["token"]),
    )
    assert joined.status_code == 201, joined.text
    assert joined.json()["studentId"] == first["user"]["id"]

    again = client.post(
        "/api/classes/join",
        json={"inviteCode": klass["inviteCode"]},
        headers=_bearer(first["token"]),
    )
    assert again.status_code == 409
    assert again.json()["code"] == "already_enrolled"

    full = client.post(
        f"/api/classes/{klass['id']}/enrollments",
        headers=_bearer(second["token"]),
    )
    assert full.status_code == 409
    assert full.json()["code"] == "capacity_exceeded"

    roster = client.get(
        f"/api/classes/{klass['id']}/enrollments",
        headers=_bearer(teacher["token"]),
    )
    assert [item["studentId"] for item in roster.json()] == [first["user"]["id"]]

    # Only the class teacher or an admin may see the roster.
    assert (
        client.get(
            f"/api/classes/{klass['id']}/enrollments",
            headers=_bearer(first["token"]),
        ).status_code
        == 403
    )

    left = client.delete(
        f"/api/classes/{klass['id']}/enrollments/{first['user']['id']}",
        headers=_bearer(first["token"]),
    )
    assert left.status_code == 204

    # The freed seat can be taken.
    taken = client.post(
        f"/api/classes/{klass['id']}/enrollments",
        headers=_bearer(second["token"]),
    )
    assert taken.status_code == 201


def test_admin_must_name_a_teacher(client: TestClient, admin_headers, catalog):
    response = client.post(
        "/api/classes/",
        json={"subjectId": catalog["subject"]["id"], "name": "Unowned"},
        headers=admin_headers,
    )

    assert response.status_code == 400


def test_delete_rules_over_http(client: TestClient, admin_headers, catalog):
    teacher = _sign_up(client, "Tom", "tom@school.edu", role="teacher")
    student = _sign_up(client, "Sid", "sid@school.edu")
    klass = client.post(
        "/api/classes/",
        json={
            "subjectId": catalog["subject"]["id"],
            "teacherId": teacher["user"]["id"],
            "name": "Evening",
        },
        headers=admin_headers,
    ).json()
    client.post(
        f"/api/classes/{klass['id']}/enrollments",
        headers=_bearer(student["token"]),
    )

    blocked = client.delete(
        f"/api/departments/{catalog['department']['id']}", headers=admin_headers
    )
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "has_dependent_subjects"

    teacher_blocked = client.delete(
        f"/api/users/{teacher['user']['id']}", headers=admin_headers
    )
    assert teacher_blocked.status_code == 409
    assert teacher_blocked.json()["code"] == "teacher_has_classes"

    assert (
        client.delete(
            f"/api/subjects/{catalog['subject']['id']}", headers=admin_headers
        ).status_code
        == 204
    )
    assert client.get(f"/api/classes/{klass['id']}", headers=admin_headers).status_code == 404

    # With the subject gone, the department and the teacher can be removed.
    assert (
        client.delete(
            f"/api/departments/{catalog['department']['id']}", headers=admin_headers
        ).status_code
        == 204
    )
    assert (
        client.delete(f"/api/users/{teacher['user']['id']}", headers=admin_headers).status_code
        == 204
    )


def test_admin_changes_roles(client: TestClient, admin_headers):
    user = _sign_up(client, "Rae", "rae@school.edu")

    denied = client.patch(
        f"/api/users/{user['user']['id']}/role",
        json={"role": "teacher"},
        headers=_bearer(user["token"]),
    )
    assert denied.status_code == 403

    updated = client.patch(
        f"/api/users/{user['user']['id']}/role",
        json={"role": "teacher"},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["role"] == "teacher"


def test_teacher_with_classes_cannot_be_demoted(client: TestClient, admin_headers, catalog):
    teacher = _sign_up(client, "Tia", "tia@school.edu", role="teacher")
    created = client.post(
        "/api/classes/",
        json={"subjectId": catalog["subject"]["id"], "name": "Section A"},
        headers=_bearer(teacher["token"]),
    )
    assert created.status_code == 201, created.text

    response = client.patch(
        f"/api/users/{teacher['user']['id']}/role",
        json={"role": "student"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["code"] == "teacher_has_classes"
    owned = client.get(
        "/api/classes/",
        params={"teacherId": teacher["user"]["id"]},
        headers=admin_headers,
    )
    assert [klass["id"] for klass in owned.json()] == [created.json()["id"]]


def test_auth_prefix_does_not_cover_sibling_paths(client: TestClient):
    response = client.get("/api/authors")
    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"

    response = client.post(
        "/api/authz",
        content="name=x",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_body"


def test_store_outage_maps_to_service_unavailable(
    client: TestClient, admin_headers, monkeypatch
):
    async def locked(self, **filters):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(ClassStore, "list_classes", locked)

    response = client.get("/api/classes/", headers=admin_headers)

    assert response.status_code == 503
    assert response.json()["code"] == "transient"


def test_session_lookup_timeout_maps_to_service_unavailable(
    client: TestClient, admin_headers, monkeypatch
):
    async def timed_out(self, token):
        raise TimeoutError()

    monkeypatch.setattr(IdentityStore, "validate_session", timed_out)

    response = client.get("/api/departments/", headers=admin_headers)

    assert response.status_code == 503
    assert response.json()["code"] == "transient"


def test_framework_errors_carry_a_code(client: TestClient, admin_headers):
    missing = client.get("/api/no-such-route", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["code"] == "http_error"

    wrong_method = client.put("/api/departments/", json={}, headers=admin_headers)
    assert wrong_method.status_code == 405
    assert wrong_method.json()["code"] == "http_error"


def test_unhandled_errors_carry_a_code(database, make_user, login, monkeypatch):
    async def broken(self, **filters):
        raise RuntimeError("boom")

    monkeypatch.setattr(ClassStore, "list_classes", broken)
    client = TestClient(create_app(database=database), raise_server_exceptions=False)

    response = client.get("/api/classes/", headers=login(make_user(Role.ADMIN).id))

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "code": "internal_error"}


def test_metrics_label_requests_by_role_and_count_domain_errors(
    client: TestClient, make_user, login
):
    headers = login(make_user(Role.TEACHER).id)
    request_labels = {
        "method": "GET",
        "route": "/api/departments/",
        "status": "200",
        "role": "teacher",
    }
    error_labels = {"kind": "not_found", "code": "unknown_class"}
    requests_before = _sample("classroom_http_requests_total", request_labels)
    errors_before = _sample("classroom_domain_errors_total", error_labels)

    assert client.get("/api/departments/", headers=headers).status_code == 200
    assert client.get("/api/classes/999999", headers=headers).status_code == 404

    assert _sample("classroom_http_requests_total", request_labels) == requests_before + 1
    assert _sample("classroom_domain_errors_total", error_labels) == errors_before + 1
