import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from steelerp.formatting import to_number
from steelerp.models import Employee, Payroll, PayrollLine

logger = logging.getLogger(__name__)

SALARY_EXPENSE_ACCOUNT = "5101 - Salary Expense"
BANK_ACCOUNT = "1010 - Bank Account"
SALARY_PAYABLE_ACCOUNT = "2101 - Salary Payable"

POSTABLE_STATUSES = ("approved", "paid")


def build_payroll_ledger(db: Session, payroll_id: str) -> dict:
    """Preview the balanced journal a payroll run posts, without writing it."""
    payroll = db.get(Payroll, payroll_id)
    if not payroll:
        raise HTTPException(status_code=404, detail="Payroll not found")

    lines = (
        db.query(PayrollLine, Employee)
        .join(Employee, PayrollLine.employee_id == Employee.id)
        .filter(PayrollLine.payroll_id == payroll_id)
        .all()
    )
    total = to_number(payroll.total_amount)
    paid = payroll.status == "paid"
    gl_entries = [
        {
            "type": "salary_expense",
            "account": SALARY_EXPENSE_ACCOUNT,
            "debit": total,
            "credit": 0,
            "description": f"Payroll Expense - {payroll.month}",
        },
        {
            "type": "salary_payable",
            "account": BANK_ACCOUNT if paid else SALARY_PAYABLE_ACCOUNT,
            "debit": 0,
            "credit": total,
            "description": f"Payroll Payment - {payroll.month}"
            if paid
            else f"Payroll Payable - {payroll.month}",
        },
    ]
    logger.debug("payroll %s: %d lines", payroll_id, len(lines))

    return {
        "payroll": {
            "id": payroll.id,
            "month": payroll.month,
            "status": payroll.status,
            "totalAmount": total,
            "employeeCount": len(lines),
        },
        "glEntries": gl_entries,
        "employeeBreakdown": [
            {
                "employeeId": employee.employee_id,
                "employeeName": employee.name,
                "basicPay": to_number(line.basic_pay),
                "overtimePay": to_number(line.overtime_pay),
                "deductions": to_number(line.deductions),
                "totalPay": to_number(line.total_pay),
                "bankAccount": employee.bank_details,
            }
            for line, employee in lines
        ],
        "readyToPost": payroll.status in POSTABLE_STATUSES,
    }
