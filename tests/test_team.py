from datetime import date, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from steelerp.models import Attendance, Employee, LabourAllocation, User


def _attendance(employee, project, statuses, overtime_hours=0):
    start = date(2026, 2, 2)
    rows = [
        Attendance(
            employee_id=employee.id,
            project_id=project.id,
            date=start + timedelta(days=offset),
            status=status,
        )
        for offset, status in enumerate(statuses)
    ]
    rows[0].overtime_hours = overtime_hours
    return rows


def test_team_costs_weight_half_days(client, admin, auth, save, project, welder) -> None:
    save(LabourAllocation(employee_id=welder.id, project_id=project.id, start_date=date(2026, 2, 1)))
    save(*_attendance(welder, project, ["present"] * 10 + ["half_day"] * 2, overtime_hours=3))

    with client:
        resp = client.get(f"/api/projects/{project.id}/team", headers=auth(admin))
        assert resp.status_code == 200
        data = resp.json()

    assert data["project"] == {"id": project.id, "title": "Warehouse Frame"}
    [member] = data["team"]
    assert member["employeeCode"] == "EMP-001"
    assert member["attendance"] == {
        "workDays": 11,
        "halfDays": 2,
        "absentDays": 0,
        "overtimeHours": 3,
        "totalDays": 12,
    }
    assert member["salary"]["dailyRate"] == pytest.approx(100)
    assert member["salary"]["regularPay"] == pytest.approx(1100)
    assert member["salary"]["overtimePay"] == pytest.approx(15)
    assert member["salary"]["totalCost"] == pytest.approx(1115)
    assert member["allocation"]["status"] == "active"

    summary = data["summary"]
    assert summary["totalTeamMembers"] == 1
    assert summary["totalLabourCost"] == pytest.approx(1115)
    assert summary["totalWorkDays"] == 11
    assert summary["totalOvertimeHours"] == 3
    assert summary["avgCostPerDay"] == "101.36"
    assert summary["costBreakdown"] == {"regularPay": pytest.approx(1100), "overtimePay": pytest.approx(15)}


def test_team_total_matches_project_labour_cost(client, admin, auth, save, project, welder) -> None:
    fitter = save(Employee(employee_id="EMP-002", name="Meena Fitter", basic_salary=3900, overtime_rate=8))
    save(
        LabourAllocation(employee_id=welder.id, project_id=project.id, start_date=date(2026, 2, 1)),
        LabourAllocation(
            employee_id=welder.id,
            project_id=project.id,
            start_date=date(2026, 3, 1),
            status="completed",
        ),
        LabourAllocation(employee_id=fitter.id, project_id=project.id, start_date=date(2026, 2, 1)),
    )
    save(
        *_attendance(welder, project, ["present", "half_day", "absent"], overtime_hours=4),
        *_attendance(fitter, project, ["present", "present", "half_day"], overtime_hours=1),
    )

    with client:
        team = client.get(f"/api/projects/{project.id}/team", headers=auth(admin)).json()
        financials = client.get(f"/api/projects/{project.id}/financials", headers=auth(admin)).json()

    assert team["summary"]["totalTeamMembers"] == 2
    welder_entry = next(member for member in team["team"] if member["employeeId"] == welder.id)
    assert welder_entry["allocationCount"] == 2
    assert welder_entry["allocation"]["startDate"] == "2026-03-01"
    assert sum(member["salary"]["totalCost"] for member in team["team"]) == pytest.approx(
        financials["costs"]["labour"]["amount"]
    )
    assert financials["costs"]["labour"]["employees"] == 3


def test_unallocated_attendance_is_left_out_of_both_reports(client, admin, auth, save, project, welder) -> None:
    casual = save(Employee(employee_id="EMP-077", name="Casual Rigger", basic_salary=2600))
    save(LabourAllocation(employee_id=welder.id, project_id=project.id, start_date=date(2026, 2, 1)))
    save(
        *_attendance(welder, project, ["present"]),
        *_attendance(casual, project, ["present"]),
    )

    with client:
        team = client.get(f"/api/projects/{project.id}/team", headers=auth(admin)).json()
        financials = client.get(f"/api/projects/{project.id}/financials", headers=auth(admin)).json()

    assert team["summary"]["totalLabourCost"] == pytest.approx(100)
    assert financials["costs"]["labour"]["amount"] == pytest.approx(100)
    assert financials["costs"]["labour"]["attendanceDays"] == 1


def test_team_without_work_days_reports_zero_average(client, admin, auth, project) -> None:
    with client:
        data = client.get(f"/api/projects/{project.id}/team", headers=auth(admin)).json()
    assert data["team"] == []
    assert data["summary"]["avgCostPerDay"] == "0.00"


def test_team_respects_project_ownership(client, auth, save, project) -> None:
    stranger = save(User(full_name="Other Client", email="other@client.test", role="client"))
    with client:
        resp = client.get(f"/api/projects/{project.id}/team", headers=auth(stranger))
        assert resp.status_code == 403


def test_allocate_staff(client, admin, auth, db, project, welder) -> None:
    with client:
        resp = client.post(
            f"/api/projects/{project.id}/team",
            json={"employeeId": welder.id, "startDate": "2026-04-01"},
            headers=auth(admin),
        )
        assert resp.status_code == 200
        body = resp.json()

    assert body["success"] is True
    assert body["message"] == "Kiran Welder allocated to project"
    assert body["allocation"]["status"] == "active"
    assert body["allocation"]["endDate"] is None
    stored = db.get(LabourAllocation, body["allocation"]["id"])
    assert stored.project_id == project.id
    assert stored.start_date == date(2026, 4, 1)


def test_allocate_staff_reports_failed_insert(client, admin, auth, db, project, welder, monkeypatch) -> None:
    def failing_commit(self):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(Session, "commit", failing_commit)
    with client:
        resp = client.post(
            f"/api/projects/{project.id}/team",
            json={"employeeId": welder.id, "startDate": "2026-04-01"},
            headers=auth(admin),
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Failed to allocate staff"}

    assert db.query(LabourAllocation).count() == 0


def test_allocate_staff_is_admin_only(client, auth, customer, project, welder) -> None:
    with client:
        resp = client.post(
            f"/api/projects/{project.id}/team",
            json={"employeeId": welder.id, "startDate": "2026-04-01"},
            headers=auth(customer),
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}


def test_allocate_staff_checks_references(client, admin, auth, project, welder) -> None:
    with client:
        no_project = client.post(
            "/api/projects/missing/team",
            json={"employeeId": welder.id, "startDate": "2026-04-01"},
            headers=auth(admin),
        )
        assert no_project.status_code == 404
        assert no_project.json() == {"error": "Project not found"}

        no_employee = client.post(
            f"/api/projects/{project.id}/team",
            json={"employeeId": "missing", "startDate": "2026-04-01"},
            headers=auth(admin),
        )
        assert no_employee.status_code == 404
        assert no_employee.json() == {"error": "Employee not found"}


def test_allocate_staff_rejects_malformed_payload(client, admin, auth, project) -> None:
    with client:
        resp = client.post(
            f"/api/projects/{project.id}/team",
            json={"startDate": "2026-04-01"},
            headers=auth(admin),
        )
        assert resp.status_code == 400
        assert "employeeId" in resp.json()["error"]
