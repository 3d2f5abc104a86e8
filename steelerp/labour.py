"""Labour costing rules shared by the project financial and team reports."""

from steelerp.formatting import to_number
from steelerp.models import Attendance, Employee

# Working days in a month used to turn a monthly basic salary into a daily rate.
PAYROLL_WORKING_DAYS = 26

# Expected attendance days per employee per month, used only for the
# dashboard attendance rate.
ATTENDANCE_WORKING_DAYS = 20

ATTENDANCE_WEIGHTS = {
    "present": 1.0,
    "half_day": 0.5,
}


def daily_rate(employee: Employee) -> float:
    return to_number(employee.basic_salary) / PAYROLL_WORKING_DAYS


def work_days(status: str) -> float:
    return ATTENDANCE_WEIGHTS.get(status, 0.0)


# Rows are weighted by status (absent rows cost nothing) rather than charged a
# full daily rate each, so project labour equals the sum of team member costs.
def attendance_cost(attendance: Attendance, employee: Employee) -> float:
    regular = work_days(attendance.status) * daily_rate(employee)
    overtime = (attendance.overtime_hours or 0) * to_number(employee.overtime_rate)
    return regular + overtime
