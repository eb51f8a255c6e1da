"""
End-to-end tests for the attendance, admin and notification endpoints
"""
import pytest
from fastapi import status

from app.models.attendance import AttendanceRecord


@pytest.fixture
def worker(make_employee):
    """Employee without a shift, so real-clock check-ins are never late"""
    return make_employee(emp_code="WRK001", name="Worker")


@pytest.fixture
def worker_headers(worker, auth_headers):
    return auth_headers("WRK001")


@pytest.fixture
def hr_headers(hr_user, auth_headers):
    return auth_headers("HR001", "hrpass123")


def test_check_in_flow(client, db, worker, worker_headers):
    """Check in, take a break, check out"""
    response = client.post(
        "/api/v1/attendance/check-in",
        json={"type": "REMOTE", "note": "from home"},
        headers=worker_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "PRESENT"
    assert data["late_minutes"] == 0
    assert data["check_in_time"].endswith("Z")

    response = client.post("/api/v1/attendance/break/start", headers=worker_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"ok": True, "sequence": 1}

    response = client.post("/api/v1/attendance/break/end", headers=worker_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["duration_minutes"] == 0

    response = client.post("/api/v1/attendance/check-out", json={}, headers=worker_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["record_id"] > 0
    assert data["total_work_minutes"] == 0
    assert data["check_out_time"].endswith("Z")

    record = db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == worker.id).one()
    assert record.work_location == "HOME"
    assert record.check_in_note == "from home"
    assert record.check_in_device == "testclient"


def test_double_check_in_conflict(client, worker_headers):
    assert client.post("/api/v1/attendance/check-in", headers=worker_headers).status_code == 201

    response = client.post("/api/v1/attendance/check-in", headers=worker_headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "ALREADY_CHECKED_IN"


def test_check_out_without_check_in(client, worker_headers):
    response = client.post("/api/v1/attendance/check-out", headers=worker_headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "NO_CHECK_IN"


def test_end_break_without_break(client, worker_headers):
    client.post("/api/v1/attendance/check-in", headers=worker_headers)

    response = client.post("/api/v1/attendance/break/end", headers=worker_headers)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "NO_ACTIVE_BREAK"


def test_invalid_coordinates_rejected(client, worker_headers):
    response = client.post(
        "/api/v1/attendance/check-in",
        json={"location": {"lat": 123.0, "lng": 0.0}},
        headers=worker_headers,
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_today_status(client, worker_headers):
    response = client.get("/api/v1/attendance/today", headers=worker_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["attendance"] is None
    assert data["employee"]["name"] == "Worker"
    assert data["employee"]["shift"] is None
    assert isinstance(data["is_weekend"], bool)

    client.post("/api/v1/attendance/check-in", headers=worker_headers)

    data = client.get("/api/v1/attendance/today", headers=worker_headers).json()
    assert data["attendance"]["status"] == "PRESENT"
    assert data["attendance"]["is_on_break"] is False
    assert data["attendance"]["date"].endswith("T00:00:00Z")


def test_my_history(client, worker_headers):
    client.post("/api/v1/attendance/check-in", headers=worker_headers)

    response = client.get("/api/v1/attendance/my-history", headers=worker_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data["items"]) == 1
    assert data["summary"]["present"] == 1
    assert data["meta"]["total"] == 1


class TestRegularizationApi:
    payload = {
        "date": "2026-03-02",
        "check_in_time": "2026-03-02T09:00:00Z",
        "check_out_time": "2026-03-02T17:00:00Z",
        "reason": "Phone died",
    }

    def test_submit_and_approve(self, client, db, worker, worker_headers, hr_headers):
        response = client.post("/api/v1/attendance/regularization", json=self.payload, headers=worker_headers)
        assert response.status_code == status.HTTP_201_CREATED
        request_id = response.json()["id"]
        assert response.json()["status"] == "PENDING"

        duplicate = client.post("/api/v1/attendance/regularization", json=self.payload, headers=worker_headers)
        assert duplicate.status_code == status.HTTP_409_CONFLICT
        assert duplicate.json()["code"] == "DUPLICATE_PENDING_REGULARIZATION"

        response = client.put(
            f"/api/v1/attendance/regularization/{request_id}",
            json={"status": "APPROVED", "note": "ok"},
            headers=hr_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "APPROVED"

        record = db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == worker.id).one()
        assert record.total_work_minutes == 480
        assert record.is_manual_entry is True

        again = client.put(
            f"/api/v1/attendance/regularization/{request_id}",
            json={"status": "REJECTED"},
            headers=hr_headers,
        )
        assert again.status_code == status.HTTP_409_CONFLICT
        assert again.json()["code"] == "REQUEST_ALREADY_PROCESSED"

        notifications = client.get("/api/v1/notifications", headers=worker_headers).json()
        assert [n["type"] for n in notifications] == ["REGULARIZATION_APPROVED"]

        read = client.put(f"/api/v1/notifications/{notifications[0]['id']}/read", headers=worker_headers)
        assert read.status_code == status.HTTP_200_OK
        assert read.json()["is_read"] is True
        assert client.get("/api/v1/notifications?unread_only=true", headers=worker_headers).json() == []

    def test_employee_cannot_decide(self, client, worker_headers):
        request_id = client.post(
            "/api/v1/attendance/regularization", json=self.payload, headers=worker_headers
        ).json()["id"]

        response = client.put(
            f"/api/v1/attendance/regularization/{request_id}",
            json={"status": "APPROVED"},
            headers=worker_headers,
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_request_needs_a_time(self, client, worker_headers):
        response = client.post(
            "/api/v1/attendance/regularization",
            json={"date": "2026-03-02", "reason": "nothing"},
            headers=worker_headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_list_scoped_to_employee(self, client, make_employee, auth_headers, worker_headers, hr_headers):
        make_employee(emp_code="WRK002")
        other_headers = auth_headers("WRK002")
        client.post("/api/v1/attendance/regularization", json=self.payload, headers=worker_headers)
        client.post("/api/v1/attendance/regularization", json=self.payload, headers=other_headers)

        assert len(client.get("/api/v1/attendance/regularization", headers=worker_headers).json()) == 1
        assert len(client.get("/api/v1/attendance/regularization", headers=hr_headers).json()) == 2


class TestAdminApi:
    def test_employee_blocked(self, client, worker_headers):
        for path in ("/api/v1/admin/attendance/history", "/api/v1/admin/attendance/dashboard"):
            assert client.get(path, headers=worker_headers).status_code == status.HTTP_403_FORBIDDEN

    def test_manual_entry_approve_lock(self, client, db, worker, hr_headers):
        response = client.post(
            "/api/v1/admin/attendance/manual",
            json={
                "employee_id": worker.id,
                "date": "2026-03-02",
                "check_in_time": "2026-03-02T09:00:00Z",
                "check_out_time": "2026-03-02T18:00:00Z",
                "reason": "Biometric outage",
            },
            headers=hr_headers,
        )
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["total_work_minutes"] == 540
        assert data["is_manual_entry"] is True
        assert data["date"] == "2026-03-02T00:00:00Z"
        record_id = data["id"]

        response = client.put(f"/api/v1/admin/attendance/{record_id}/lock", headers=hr_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "RECORD_NOT_APPROVED"

        response = client.put(f"/api/v1/admin/attendance/{record_id}/approve", headers=hr_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["is_approved"] is True

        response = client.put(f"/api/v1/admin/attendance/{record_id}/lock", headers=hr_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["is_locked"] is True

        response = client.post(
            "/api/v1/admin/attendance/manual",
            json={"employee_id": worker.id, "date": "2026-03-02", "reason": "Overwrite"},
            headers=hr_headers,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "RECORD_LOCKED"

        response = client.put(f"/api/v1/admin/attendance/{record_id}/unlock", headers=hr_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["is_locked"] is False

    def test_unknown_record(self, client, hr_headers):
        response = client.put("/api/v1/admin/attendance/999/approve", headers=hr_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "RECORD_NOT_FOUND"

    def test_manual_entry_for_unknown_employee(self, client, hr_headers):
        response = client.post(
            "/api/v1/admin/attendance/manual",
            json={"employee_id": 999, "date": "2026-03-02", "reason": "typo"},
            headers=hr_headers,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "EMPLOYEE_NOT_FOUND"

    def test_bulk_lock(self, client, db, worker, hr_headers):
        record_id = client.post(
            "/api/v1/admin/attendance/manual",
            json={"employee_id": worker.id, "date": "2026-03-02", "reason": "Import"},
            headers=hr_headers,
        ).json()["id"]
        client.put(f"/api/v1/admin/attendance/{record_id}/approve", headers=hr_headers)

        response = client.post(
            "/api/v1/admin/attendance/bulk-lock",
            json={"start_date": "2026-03-01", "end_date": "2026-03-31"},
            headers=hr_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"locked_count": 1}

    def test_bulk_lock_inverted_range(self, client, hr_headers):
        response = client.post(
            "/api/v1/admin/attendance/bulk-lock",
            json={"start_date": "2026-03-31", "end_date": "2026-03-01"},
            headers=hr_headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_history_and_dashboard(self, client, worker, worker_headers, hr_headers):
        client.post("/api/v1/attendance/check-in", headers=worker_headers)

        response = client.get(
            f"/api/v1/admin/attendance/history?employee_id={worker.id}&status=PRESENT",
            headers=hr_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["meta"]["total"] == 1

        response = client.get("/api/v1/admin/attendance/dashboard", headers=hr_headers)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["today"]["present"] == 1
        assert data["today"]["total_employees"] == 2

        response = client.get("/api/v1/admin/attendance/dashboard?date=2026-03-02", headers=hr_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["today"]["date"] == "2026-03-02"

    def test_inverted_history_range(self, client, hr_headers):
        response = client.get(
            "/api/v1/admin/attendance/history?start_date=2026-03-05&end_date=2026-03-01",
            headers=hr_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "INVALID_DATE_RANGE"
