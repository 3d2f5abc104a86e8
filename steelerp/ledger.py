"""Unified general ledger assembled from every module's financial records.

Each source record is mapped through ``POSTING_RULES`` into one entry shape::

    {id, type, account, debit, credit, date, description, reference, entity, status?}

Exactly one of ``debit``/``credit`` carries the amount; records whose rule has
no side (e.g. a scrap movement) keep both at zero. The merged view is never
stored: it is rebuilt from the source tables on every read.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from steelerp.formatting import as_utc, isoformat, to_number
from steelerp.models import (
    BankAccount,
    BankTransaction,
    Employee,
    InventoryItem,
    InventoryTransaction,
    Invoice,
    Payment,
    Payroll,
    PayrollLine,
    Project,
    PurchaseOrder,
    PurchaseRequest,
    Transaction,
    User,
    Vendor,
    VendorBill,
    VendorPayment,
)

logger = logging.getLogger(__name__)

DEBIT = "debit"
CREDIT = "credit"

# (record kind, subtype) -> (account, side). A subtype of None matches any record
# of that kind; an account of None means the account comes from the record.
POSTING_RULES: dict[tuple[str, Optional[str]], tuple[Optional[str], Optional[str]]] = {
    ("invoice", None): ("AR - Accounts Receivable", DEBIT),
    ("payment", None): ("Cash/Bank", CREDIT),
    ("vendor_bill", None): ("AP - Accounts Payable", DEBIT),
    # Outgoing vendor cash is booked as a debit, unlike customer receipts.
    ("vendor_payment", None): ("Cash/Bank", DEBIT),
    ("payroll", None): ("Salary Expense", DEBIT),
    ("inventory", "issue_to_project"): ("COGS", DEBIT),
    ("inventory", "stock_in"): ("Inventory", CREDIT),
    ("inventory", None): ("Inventory", None),
    ("transaction", "income"): (None, DEBIT),
    ("transaction", "expense"): (None, CREDIT),
    ("transaction", None): (None, None),
    ("bank_transaction", "deposit"): (None, DEBIT),
    ("bank_transaction", "withdrawal"): (None, CREDIT),
    ("bank_transaction", None): (None, None),
}


def posting_rule(kind: str, subtype: Optional[str] = None) -> tuple[Optional[str], Optional[str]]:
    rule = POSTING_RULES.get((kind, subtype))
    if rule is None:
        rule = POSTING_RULES[(kind, None)]
    return rule


def _entry(
    kind: str,
    subtype: Optional[str],
    *,
    id: str,
    type: str,
    amount: float,
    date: date | datetime,
    description: Optional[str],
    reference: Optional[str],
    entity: Optional[str],
    account: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    rule_account, side = posting_rule(kind, subtype)
    entry: dict[str, Any] = {
        "id": id,
        "type": type,
        "account": rule_account or account,
        "debit": amount if side == DEBIT else 0,
        "credit": amount if side == CREDIT else 0,
        "date": date,
        "description": description,
        "reference": reference,
        "entity": entity,
    }
    if status is not None:
        entry["status"] = status
    return entry


def _date_window(start_date: Optional[date], end_date: Optional[date]) -> Optional[tuple[datetime, datetime]]:
    if start_date is None or end_date is None:
        return None
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return start, end


def _within(query, column, window):
    if window is None:
        return query
    return query.filter(column >= window[0], column < window[1])


def _payroll_month_start(month: str) -> date:
    year, month_number = month.split("-")[:2]
    return date(int(year), int(month_number), 1)


def assemble_general_ledger(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project_id: Optional[str] = None,
    category: Optional[str] = None,
) -> dict:
    window = _date_window(start_date, end_date)

    transactions = _within(db.query(Transaction), Transaction.created_at, window)
    if category is not None:
        transactions = transactions.filter(Transaction.category == category)
    transactions = transactions.order_by(Transaction.date.desc()).all()

    invoices = _within(
        db.query(Invoice, Project).outerjoin(Project, Invoice.project_id == Project.id),
        Invoice.created_at,
        window,
    )
    if project_id is not None:
        invoices = invoices.filter(Invoice.project_id == project_id)
    invoices = invoices.all()

    payments = _within(
        db.query(Payment, Invoice).join(Invoice, Payment.invoice_id == Invoice.id),
        Payment.created_at,
        window,
    ).all()

    bills = _within(
        db.query(VendorBill, Vendor).join(Vendor, VendorBill.vendor_id == Vendor.id),
        VendorBill.created_at,
        window,
    )
    if project_id is not None:
        bills = (
            bills.join(PurchaseOrder, VendorBill.purchase_order_id == PurchaseOrder.id)
            .join(PurchaseRequest, PurchaseOrder.purchase_request_id == PurchaseRequest.id)
            .filter(PurchaseRequest.project_id == project_id)
        )
    bills = bills.all()
    vendors_by_bill = {bill.id: (bill, vendor) for bill, vendor in bills}
    vendor_payments = []
    if vendors_by_bill:
        vendor_payments = (
            db.query(VendorPayment)
            .filter(VendorPayment.vendor_bill_id.in_(list(vendors_by_bill)))
            .all()
        )

    payroll_lines = _within(
        db.query(PayrollLine, Payroll, Employee)
        .join(Payroll, PayrollLine.payroll_id == Payroll.id)
        .join(Employee, PayrollLine.employee_id == Employee.id),
        Payroll.created_at,
        window,
    ).all()

    stock_moves = _within(
        db.query(InventoryTransaction, InventoryItem, Project)
        .join(InventoryItem, InventoryTransaction.item_id == InventoryItem.id)
        .outerjoin(Project, InventoryTransaction.project_id == Project.id),
        InventoryTransaction.created_at,
        window,
    )
    if project_id is not None:
        stock_moves = stock_moves.filter(InventoryTransaction.project_id == project_id)
    stock_moves = stock_moves.all()

    bank_transactions = _within(
        db.query(BankTransaction, BankAccount).join(
            BankAccount, BankTransaction.bank_account_id == BankAccount.id
        ),
        BankTransaction.created_at,
        window,
    ).all()

    entries: list[dict] = []
    for invoice, project in invoices:
        title = project.title if project else None
        entries.append(
            _entry(
                "invoice",
                None,
                id=invoice.id,
                type="invoice",
                amount=to_number(invoice.amount),
                date=invoice.created_at,
                description=f"Invoice {invoice.invoice_number} - {title}",
                reference=invoice.invoice_number,
                entity=title,
                status=invoice.status,
            )
        )
    for payment, invoice in payments:
        entries.append(
            _entry(
                "payment",
                None,
                id=payment.id,
                type="payment",
                amount=to_number(payment.amount),
                date=payment.payment_date,
                description=f"Payment - {invoice.invoice_number}",
                reference=payment.id,
                entity=invoice.project_id,
            )
        )
    for bill, vendor in bills:
        entries.append(
            _entry(
                "vendor_bill",
                None,
                id=bill.id,
                type="vendor_bill",
                amount=to_number(bill.amount),
                date=bill.created_at,
                description=f"Vendor Bill - {vendor.name}",
                reference=bill.bill_number,
                entity=vendor.name,
                status=bill.status,
            )
        )
    for vendor_payment in vendor_payments:
        bill, vendor = vendors_by_bill[vendor_payment.vendor_bill_id]
        entries.append(
            _entry(
                "vendor_payment",
                None,
                id=vendor_payment.id,
                type="vendor_payment",
                amount=to_number(vendor_payment.amount),
                date=vendor_payment.payment_date,
                description=f"Payment to {vendor.name}",
                reference=bill.bill_number,
                entity=vendor.name,
            )
        )
    for line, payroll, employee in payroll_lines:
        entries.append(
            _entry(
                "payroll",
                None,
                id=line.id,
                type="payroll",
                amount=to_number(line.total_pay),
                date=_payroll_month_start(payroll.month),
                description=f"Salary - {employee.name}",
                reference=payroll.month,
                entity=employee.employee_id,
            )
        )
    for move, item, project in stock_moves:
        entries.append(
            _entry(
                "inventory",
                move.type,
                id=move.id,
                type="inventory",
                amount=to_number(item.cost_price) * (move.quantity or 0),
                date=move.date,
                description=f"{move.type} - {item.name}",
                reference=move.reference_no,
                entity=project.title if project else "Stock",
            )
        )
    for txn in transactions:
        entries.append(
            _entry(
                "transaction",
                txn.type,
                id=txn.id,
                type=txn.type,
                amount=to_number(txn.amount),
                date=txn.date,
                description=txn.description or txn.category,
                reference=txn.reference_number,
                entity=txn.category,
                account=txn.category,
            )
        )
    for bank_txn, account in bank_transactions:
        entries.append(
            _entry(
                "bank_transaction",
                bank_txn.type,
                id=bank_txn.id,
                type="bank_transaction",
                amount=to_number(bank_txn.amount),
                date=bank_txn.date,
                description=bank_txn.description,
                reference=bank_txn.reference,
                entity=account.name,
                account=f"Bank - {account.name}",
            )
        )

    entries.sort(key=lambda entry: as_utc(entry["date"]), reverse=True)
    total_debits = sum(entry["debit"] for entry in entries)
    total_credits = sum(entry["credit"] for entry in entries)
    logger.debug("general ledger: %d entries", len(entries))

    for entry in entries:
        entry["date"] = isoformat(entry["date"])

    return {
        "entries": entries,
        "summary": {
            "totalDebits": total_debits,
            "totalCredits": total_credits,
            "balance": total_debits - total_credits,
            "entryCount": len(entries),
        },
    }


def post_ledger_entry(
    db: Session,
    user: User,
    entry_type: Optional[str],
    entity_id: Optional[str],
    amount: float,
    description: Optional[str],
) -> dict:
    transaction = Transaction(
        type="income" if amount > 0 else "expense",
        category=entry_type or "other",
        amount=abs(amount),
        date=datetime.now(timezone.utc),
        description=description,
        reference_number=entity_id,
        created_by=user.id,
    )
    db.add(transaction)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("posting ledger entry of type %s failed", entry_type)
        raise HTTPException(status_code=400, detail="Failed to post entry")
    db.refresh(transaction)
    logger.info("posted %s ledger entry %s", transaction.type, transaction.id)
    return {
        "success": True,
        "transactionId": transaction.id,
        "message": "GL entry posted successfully",
    }
