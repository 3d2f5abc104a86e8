"""Per-project profit and loss built from invoices, labour, stock and vendors."""

import logging

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from steelerp.auth import ensure_project_access
from steelerp.config import settings
from steelerp.formatting import fixed, percent, to_number
from steelerp.labour import attendance_cost
from steelerp.models import (
    Attendance,
    Employee,
    InventoryItem,
    InventoryTransaction,
    Invoice,
    LabourAllocation,
    Payment,
    Project,
    PurchaseOrder,
    PurchaseRequest,
    Transaction,
    User,
    VendorBill,
    VendorPayment,
)

logger = logging.getLogger(__name__)

# Inventory movements that consume stock on behalf of a project.
PROJECT_COST_INVENTORY_TYPES = ("issue_to_project", "scrap", "wastage")

OTHER_COST_CATEGORY = "project_expense"


def get_project_or_404(db: Session, project_id: str) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _share(part: float, total: float) -> str:
    if total > 0:
        return percent(part / total * 100, 1)
    return "0%"


def _other_costs_query(db: Session, project_id: str):
    linked = Transaction.project_id == project_id
    if settings.legacy_description_cost_link:
        linked = or_(linked, Transaction.description.contains(project_id, autoescape=True))
    return db.query(Transaction).filter(Transaction.category == OTHER_COST_CATEGORY, linked)


def build_project_financials(db: Session, project_id: str, user: User) -> dict:
    project = get_project_or_404(db, project_id)
    ensure_project_access(user, project)
    client = db.get(User, project.client_id)

    # Revenue
    invoices = db.query(Invoice).filter(Invoice.project_id == project_id).all()
    payments = (
        db.query(Payment)
        .join(Invoice, Payment.invoice_id == Invoice.id)
        .filter(Invoice.project_id == project_id)
        .all()
    )
    total_invoiced = sum(to_number(invoice.amount) for invoice in invoices)
    total_paid = sum(to_number(payment.amount) for payment in payments)
    pending_revenue = total_invoiced - total_paid

    # Labour: only employees allocated to the project, the same population as the team report
    allocations = db.query(LabourAllocation).filter(LabourAllocation.project_id == project_id).all()
    allocated_employees = {allocation.employee_id for allocation in allocations}
    attendance = []
    if allocated_employees:
        attendance = (
            db.query(Attendance, Employee)
            .join(Employee, Attendance.employee_id == Employee.id)
            .filter(
                Attendance.project_id == project_id,
                Attendance.employee_id.in_(list(allocated_employees)),
            )
            .all()
        )
    labour_cost = sum(attendance_cost(row, employee) for row, employee in attendance)

    # Inventory
    stock_moves = (
        db.query(InventoryTransaction, InventoryItem)
        .join(InventoryItem, InventoryTransaction.item_id == InventoryItem.id)
        .filter(InventoryTransaction.project_id == project_id)
        .all()
    )
    inventory_cost = sum(
        to_number(item.cost_price) * move.quantity
        for move, item in stock_moves
        if move.type in PROJECT_COST_INVENTORY_TYPES
    )

    # Vendors
    purchase_requests = db.query(PurchaseRequest).filter(PurchaseRequest.project_id == project_id).all()
    purchase_orders = (
        db.query(PurchaseOrder)
        .join(PurchaseRequest, PurchaseOrder.purchase_request_id == PurchaseRequest.id)
        .filter(PurchaseRequest.project_id == project_id)
        .all()
    )
    vendor_payments = (
        db.query(VendorPayment)
        .join(VendorBill, VendorPayment.vendor_bill_id == VendorBill.id)
        .join(PurchaseOrder, VendorBill.purchase_order_id == PurchaseOrder.id)
        .join(PurchaseRequest, PurchaseOrder.purchase_request_id == PurchaseRequest.id)
        .filter(PurchaseRequest.project_id == project_id)
        .all()
    )
    vendor_billed = sum(to_number(order.total_amount) for order in purchase_orders)
    vendor_paid = sum(to_number(payment.amount) for payment in vendor_payments)

    # Other
    other_costs = sum(to_number(txn.amount) for txn in _other_costs_query(db, project_id))

    logger.debug(
        "project %s: %d invoices, %d attendance rows, %d stock moves, %d purchase orders",
        project_id,
        len(invoices),
        len(attendance),
        len(stock_moves),
        len(purchase_orders),
    )

    total_costs = labour_cost + inventory_cost + vendor_billed + other_costs
    total_expense_paid = labour_cost + inventory_cost + vendor_paid + other_costs
    gross_profit = total_invoiced - total_costs
    gross_margin = gross_profit / total_invoiced * 100 if total_invoiced > 0 else 0
    cash_profit = total_paid - total_expense_paid
    estimated = to_number(project.estimated_cost)

    return {
        "project": {
            "id": project.id,
            "title": project.title,
            "status": project.status,
            "client": client.full_name if client else None,
        },
        "revenue": {
            "invoiced": total_invoiced,
            "paid": total_paid,
            "pending": pending_revenue,
            "overpaid": pending_revenue < 0,
        },
        "costs": {
            "labour": {
                "amount": labour_cost,
                "employees": len(allocations),
                "attendanceDays": len(attendance),
            },
            "inventory": {
                "amount": inventory_cost,
                "items": len(stock_moves),
                "categories": list(dict.fromkeys(move.type for move, _ in stock_moves)),
            },
            "vendor": {
                "amount": vendor_billed,
                "paid": vendor_paid,
                "pending": vendor_billed - vendor_paid,
                "orders": len(purchase_requests),
            },
            "other": other_costs,
            "total": total_costs,
        },
        "profitability": {
            "grossProfit": gross_profit,
            "grossProfitMargin": percent(gross_margin),
            "cashProfit": cash_profit,
            "roi": percent(gross_profit / total_costs * 100) if total_costs > 0 else "N/A",
        },
        "costBreakdown": {
            "labour": _share(labour_cost, total_costs),
            "inventory": _share(inventory_cost, total_costs),
            "vendor": _share(vendor_billed, total_costs),
            "other": _share(other_costs, total_costs),
        },
        "estimatedVsActual": {
            "estimated": estimated,
            "actual": total_costs,
            "variance": fixed(estimated - total_costs),
            "variancePercent": percent((estimated - total_costs) / estimated * 100, 1)
            if estimated > 0
            else "N/A",
        },
    }
