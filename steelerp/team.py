import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from steelerp.auth import ensure_project_access
from steelerp.financials import get_project_or_404
from steelerp.formatting import fixed, isoformat, to_number
from steelerp.labour import daily_rate, work_days
from steelerp.models import Attendance, Employee, LabourAllocation, User

logger = logging.getLogger(__name__)


def _allocation_payload(allocation: LabourAllocation) -> dict:
    return {
        "allocationId": allocation.id,
        "startDate": isoformat(allocation.start_date),
        "endDate": isoformat(allocation.end_date),
        "status": allocation.status,
    }


def _member_costs(employee: Employee, allocations: list[LabourAllocation], attendance: list[Attendance]) -> dict:
    days = sum(work_days(row.status) for row in attendance)
    overtime_hours = sum(row.overtime_hours or 0 for row in attendance)
    rate = daily_rate(employee)
    regular_pay = days * rate
    overtime_pay = overtime_hours * to_number(employee.overtime_rate)
    latest = max(allocations, key=lambda allocation: allocation.start_date)
    return {
        "employeeId": employee.id,
        "employeeCode": employee.employee_id,
        "name": employee.name,
        "role": employee.role,
        "skillType": employee.skill_type,
        "employmentType": employee.employment_type,
        "allocation": _allocation_payload(latest),
        "allocationCount": len(allocations),
        "attendance": {
            "workDays": days,
            "halfDays": sum(1 for row in attendance if row.status == "half_day"),
            "absentDays": sum(1 for row in attendance if row.status == "absent"),
            "overtimeHours": overtime_hours,
            "totalDays": len(attendance),
        },
        "salary": {
            "basicSalary": to_number(employee.basic_salary),
            "dailyRate": rate,
            "overtimeRate": to_number(employee.overtime_rate),
            "regularPay": regular_pay,
            "overtimePay": overtime_pay,
            "totalCost": regular_pay + overtime_pay,
        },
    }


def build_team_costs(db: Session, project_id: str, user: User) -> dict:
    project = get_project_or_404(db, project_id)
    ensure_project_access(user, project)

    rows = (
        db.query(LabourAllocation, Employee)
        .join(Employee, LabourAllocation.employee_id == Employee.id)
        .filter(LabourAllocation.project_id == project_id)
        .order_by(LabourAllocation.created_at, LabourAllocation.id)
        .all()
    )
    employees: dict[str, Employee] = {}
    allocations: dict[str, list[LabourAllocation]] = defaultdict(list)
    for allocation, employee in rows:
        employees.setdefault(employee.id, employee)
        allocations[employee.id].append(allocation)

    attendance: dict[str, list[Attendance]] = defaultdict(list)
    if employees:
        for row in (
            db.query(Attendance)
            .filter(Attendance.project_id == project_id, Attendance.employee_id.in_(list(employees)))
            .all()
        ):
            attendance[row.employee_id].append(row)

    team = [
        _member_costs(employee, allocations[employee_id], attendance[employee_id])
        for employee_id, employee in employees.items()
    ]
    logger.debug("project %s: %d team members from %d allocations", project_id, len(team), len(rows))

    total_labour_cost = sum(member["salary"]["totalCost"] for member in team)
    total_work_days = sum(member["attendance"]["workDays"] for member in team)
    total_overtime_hours = sum(member["attendance"]["overtimeHours"] for member in team)
    avg_cost_per_day = total_labour_cost / total_work_days if total_work_days > 0 else 0

    return {
        "project": {"id": project.id, "title": project.title},
        "team": team,
        "summary": {
            "totalTeamMembers": len(team),
            "totalLabourCost": total_labour_cost,
            "totalWorkDays": total_work_days,
            "totalOvertimeHours": total_overtime_hours,
            "avgCostPerDay": fixed(avg_cost_per_day),
            "costBreakdown": {
                "regularPay": sum(member["salary"]["regularPay"] for member in team),
                "overtimePay": sum(member["salary"]["overtimePay"] for member in team),
            },
        },
    }


def allocate_staff(
    db: Session,
    project_id: str,
    employee_id: str,
    start_date: date,
    end_date: Optional[date] = None,
) -> dict:
    get_project_or_404(db, project_id)
    employee = db.get(Employee, employee_id)
    if not employee:
        raise HTTPException(status_code=404, detail="Employee not found")

    allocation = LabourAllocation(
        employee_id=employee.id,
        project_id=project_id,
        start_date=start_date,
        end_date=end_date,
        status="active",
    )
    db.add(allocation)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("allocating employee %s to project %s failed", employee_id, project_id)
        raise HTTPException(status_code=400, detail="Failed to allocate staff")
    db.refresh(allocation)
    logger.info("allocated employee %s to project %s", employee.employee_id, project_id)

    return {
        "success": True,
        "message": f"{employee.name} allocated to project",
        "allocation": {
            "id": allocation.id,
            "employeeId": employee.id,
            "projectId": allocation.project_id,
            "startDate": isoformat(allocation.start_date),
            "endDate": isoformat(allocation.end_date),
            "status": allocation.status,
            "employee": {"name": employee.name, "basicSalary": to_number(employee.basic_salary)},
        },
    }
