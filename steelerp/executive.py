"""Executive dashboard: one snapshot of every module plus derived alerts."""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from steelerp.formatting import as_utc, percent, to_number
from steelerp.labour import ATTENDANCE_WORKING_DAYS
from steelerp.models import (
    Attendance,
    Employee,
    InventoryItem,
    Invoice,
    LabourAllocation,
    MeetingRequest,
    Payment,
    Payroll,
    Project,
    PurchaseOrder,
    SupportRequest,
    Transaction,
    Vendor,
    VendorBill,
    VendorPayment,
)

logger = logging.getLogger(__name__)

TREND_WINDOW = timedelta(days=30)
TOP_VENDOR_COUNT = 5
STOCKOUT_RISK_COUNT = 5
OUTSTANDING_REVENUE_THRESHOLD = 0.2
UTILIZATION_THRESHOLD = 60


def _rate(numerator: float, denominator: float, digits: int = 1) -> tuple[float, str]:
    if denominator <= 0:
        return 0.0, "0%"
    value = numerator / denominator * 100
    return value, percent(value, digits)


def _is_low_stock(item: InventoryItem) -> bool:
    return bool(item.min_stock) and item.current_stock < item.min_stock


def _project_metrics(db: Session, now: datetime) -> dict:
    projects = db.query(Project).all()
    invoices = db.query(Invoice).all()
    payments = db.query(Payment).all()

    overdue_days = [
        max((now.date() - invoice.due_date).days, 0)
        for invoice in invoices
        if invoice.status == "overdue" and invoice.due_date is not None
    ]
    metrics = {
        "total": len(projects),
        "pending": sum(1 for project in projects if project.status == "pending"),
        "inProgress": sum(1 for project in projects if project.status == "in_progress"),
        "completed": sum(1 for project in projects if project.status == "completed"),
        "totalRevenue": sum(to_number(invoice.amount) for invoice in invoices),
        "totalPaid": sum(to_number(payment.amount) for payment in payments),
        "overdueDays": max(overdue_days, default=0),
    }
    # "pending" ends up as the outstanding amount, replacing the status count.
    metrics["pending"] = metrics["totalRevenue"] - metrics["totalPaid"]
    metrics["overpaid"] = metrics["pending"] < 0
    return metrics


def _financial_metrics(db: Session, projects: dict, transactions: list[Transaction]) -> dict:
    bills = db.query(VendorBill).all()
    vendor_paid = sum(to_number(payment.amount) for payment in db.query(VendorPayment).all())

    manual_income = sum(to_number(txn.amount) for txn in transactions if txn.type == "income")
    manual_expense = sum(to_number(txn.amount) for txn in transactions if txn.type == "expense")
    total_income = manual_income + projects["totalPaid"]
    total_expense = manual_expense + sum(to_number(bill.amount) for bill in bills)
    net_profit = total_income - total_expense

    return {
        "totalIncome": total_income,
        "totalExpense": total_expense,
        "netProfit": net_profit,
        "profitMargin": percent(net_profit / total_income * 100) if total_income > 0 else "0%",
        "cashFlow": projects["totalPaid"] - vendor_paid,
        "invoicesOutstanding": projects["pending"],
        "vendorPayablesOutstanding": sum(
            to_number(bill.amount) for bill in bills if bill.status != "paid"
        ),
    }


def _hr_metrics(db: Session, now: datetime) -> tuple[dict, float]:
    employees = db.query(Employee).all()
    active_allocations = {
        row.employee_id
        for row in db.query(LabourAllocation).filter(LabourAllocation.status == "active")
    }
    current_month = now.strftime("%Y-%m")
    current_payroll: Optional[Payroll] = (
        db.query(Payroll).filter(Payroll.month == current_month).order_by(Payroll.created_at).first()
    )
    month_attendance = [
        row for row in db.query(Attendance).all() if row.date.strftime("%Y-%m") == current_month
    ]
    employee_ids = {employee.id for employee in employees}
    allocated = sum(1 for employee_id in employee_ids if employee_id in active_allocations)
    present = sum(1 for row in month_attendance if row.status == "present")

    utilization, utilization_label = _rate(allocated, len(employees))
    _, attendance_label = _rate(present, len(employees) * ATTENDANCE_WORKING_DAYS)
    metrics = {
        "totalEmployees": len(employees),
        "activeEmployees": sum(1 for employee in employees if employee.status == "active"),
        "allocatedToProjects": allocated,
        "utilizationRate": utilization_label,
        "currentMonthPayroll": to_number(current_payroll.total_amount) if current_payroll else 0,
        "payrollStatus": current_payroll.status if current_payroll else "not_generated",
        "attendanceThisMonth": len(month_attendance),
        "attendanceRate": attendance_label,
    }
    return metrics, utilization


def _inventory_metrics(db: Session) -> dict:
    items = db.query(InventoryItem).order_by(InventoryItem.created_at, InventoryItem.id).all()
    low_stock = [item for item in items if _is_low_stock(item)]
    return {
        "totalItems": len(items),
        "lowStockItems": len(low_stock),
        "criticalItems": sum(1 for item in items if item.current_stock == 0),
        "totalInventoryValue": sum(to_number(item.cost_price) * item.current_stock for item in items),
        "stockoutRisk": [item.name for item in low_stock[:STOCKOUT_RISK_COUNT]],
    }


def _procurement_metrics(db: Session) -> dict:
    orders = db.query(PurchaseOrder).all()
    vendors = db.query(Vendor).order_by(Vendor.created_at, Vendor.id).all()
    order_ids = {order.id for order in orders}
    pending_payments = sum(
        to_number(bill.amount)
        for bill in db.query(VendorBill).all()
        if bill.purchase_order_id in order_ids and bill.status != "paid"
    )

    spend: dict[str, float] = defaultdict(float)
    for order in orders:
        spend[order.vendor_id] += to_number(order.total_amount)
    ranked = sorted(vendors, key=lambda vendor: spend[vendor.id], reverse=True)

    return {
        "totalVendors": len(vendors),
        "totalPurchaseOrders": len(orders),
        "openOrders": sum(1 for order in orders if order.status not in ("paid", "cancelled")),
        "totalOrderValue": sum(to_number(order.total_amount) for order in orders),
        "pendingPayments": pending_payments,
        "topVendors": [vendor.name for vendor in ranked[:TOP_VENDOR_COUNT]],
    }


def _operational_metrics(db: Session) -> dict:
    tickets = db.query(SupportRequest).all()
    meetings = db.query(MeetingRequest).all()
    return {
        "openSupportTickets": sum(1 for ticket in tickets if ticket.status != "closed"),
        "overdueSupportTickets": sum(1 for ticket in tickets if ticket.status == "open"),
        "pendingMeetings": sum(1 for meeting in meetings if meeting.status == "pending"),
        "completedMeetings": sum(1 for meeting in meetings if meeting.status == "completed"),
    }


def build_alerts(projects: dict, financials: dict, hr_utilization: float, inventory: dict) -> list[dict]:
    alerts = []
    if inventory["lowStockItems"] > 0:
        alerts.append(
            {
                "severity": "warning",
                "message": f"{inventory['lowStockItems']} items below minimum stock",
                "action": "Review inventory and create purchase orders",
            }
        )
    if financials["netProfit"] < 0:
        alerts.append(
            {
                "severity": "critical",
                "message": "Operating at loss",
                "action": "Review project profitability",
            }
        )
    if projects["pending"] > projects["totalRevenue"] * OUTSTANDING_REVENUE_THRESHOLD:
        alerts.append(
            {
                "severity": "warning",
                "message": "More than 20% of revenue outstanding",
                "action": "Follow up on overdue invoices",
            }
        )
    if hr_utilization < UTILIZATION_THRESHOLD:
        alerts.append(
            {
                "severity": "info",
                "message": "Resource utilization below 60%",
                "action": "Plan new projects or allocate existing",
            }
        )
    return alerts


def _created_since(rows, since: datetime) -> list:
    return [row for row in rows if as_utc(row.created_at) > since]


def _trend_metrics(db: Session, transactions: list[Transaction], since: datetime) -> dict:
    recent = _created_since(transactions, since)
    return {
        "newProjectsThisMonth": len(_created_since(db.query(Project).all(), since)),
        "revenueThisMonth": sum(to_number(txn.amount) for txn in recent if txn.type == "income"),
        "expenseThisMonth": sum(to_number(txn.amount) for txn in recent if txn.type == "expense"),
        "newEmployees": len(_created_since(db.query(Employee).all(), since)),
        "newVendors": len(_created_since(db.query(Vendor).all(), since)),
    }


def build_executive_summary(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)

    transactions = db.query(Transaction).all()
    projects = _project_metrics(db, now)
    financials = _financial_metrics(db, projects, transactions)
    hr, utilization = _hr_metrics(db, now)
    inventory = _inventory_metrics(db)
    procurement = _procurement_metrics(db)
    operations = _operational_metrics(db)
    trends = _trend_metrics(db, transactions, now - TREND_WINDOW)
    alerts = build_alerts(projects, financials, utilization, inventory)
    logger.debug("executive summary: %d projects, %d alerts", projects["total"], len(alerts))

    return {
        "timestamp": now.isoformat(),
        "projects": projects,
        "financials": financials,
        "hr": hr,
        "inventory": inventory,
        "procurement": procurement,
        "operations": operations,
        "trends": trends,
        "alerts": alerts,
    }
