from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from steelerp.db import Base

ID_TYPE = String(36)
MONEY = Numeric(14, 2)


def _uuid() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "user"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    role: Mapped[str] = mapped_column(Text, nullable=False, default="client")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class Project(Base):
    __tablename__ = "project"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    client_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("user.id"), nullable=False)
    estimated_cost: Mapped[Numeric | None] = mapped_column(MONEY)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class Invoice(Base):
    __tablename__ = "invoice"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    invoice_number: Mapped[str] = mapped_column(Text, nullable=False)
    project_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("project.id"), nullable=False)
    amount: Mapped[Numeric] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    due_date: Mapped[Date | None] = mapped_column(Date)
    paid_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class Payment(Base):
    __tablename__ = "payment"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    invoice_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("invoice.id"), nullable=False)
    amount: Mapped[Numeric] = mapped_column(MONEY, nullable=False)
    payment_date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class Transaction(Base):
    __tablename__ = "transaction"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Numeric] = mapped_column(MONEY, nullable=False)
    date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    description: Mapped[str | None] = mapped_column(Text)
    reference_number: Mapped[str | None] = mapped_column(Text)
    project_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("project.id"))
    created_by: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("user.id"))
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class Employee(Base):
    __tablename__ = "employee"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    employee_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str | None] = mapped_column(Text)
    skill_type: Mapped[str | None] = mapped_column(Text)
    employment_type: Mapped[str | None] = mapped_column(Text)
    basic_salary: Mapped[Numeric] = mapped_column(MONEY, nullable=False, default=0)
    overtime_rate: Mapped[Numeric] = mapped_column(MONEY, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    bank_details: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class Attendance(Base):
    __tablename__ = "attendance"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    employee_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("employee.id"), nullable=False)
    project_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("project.id"))
    date: Mapped[Date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="present")
    overtime_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class LabourAllocation(Base):
    __tablename__ = "labour_allocation"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    employee_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("employee.id"), nullable=False)
    project_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("project.id"), nullable=False)
    start_date: Mapped[Date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class Payroll(Base):
    __tablename__ = "payroll"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    # YYYY-MM
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    total_amount: Mapped[Numeric] = mapped_column(MONEY, nullable=False, default=0)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class PayrollLine(Base):
    __tablename__ = "payroll_line"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    payroll_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("payroll.id"), nullable=False)
    employee_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("employee.id"), nullable=False)
    basic_pay: Mapped[Numeric] = mapped_column(MONEY, nullable=False, default=0)
    overtime_pay: Mapped[Numeric] = mapped_column(MONEY, nullable=False, default=0)
    deductions: Mapped[Numeric] = mapped_column(MONEY, nullable=False, default=0)
    total_pay: Mapped[Numeric] = mapped_column(MONEY, nullable=False, default=0)


class Vendor(Base):
    __tablename__ = "vendor"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class PurchaseRequest(Base):
    __tablename__ = "purchase_request"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    project_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("project.id"))
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class PurchaseOrder(Base):
    __tablename__ = "purchase_order"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    po_number: Mapped[str] = mapped_column(Text, nullable=False)
    purchase_request_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("purchase_request.id"))
    vendor_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("vendor.id"), nullable=False)
    total_amount: Mapped[Numeric] = mapped_column(MONEY, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class VendorBill(Base):
    __tablename__ = "vendor_bill"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    bill_number: Mapped[str] = mapped_column(Text, nullable=False)
    vendor_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("vendor.id"), nullable=False)
    purchase_order_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("purchase_order.id"))
    amount: Mapped[Numeric] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class VendorPayment(Base):
    __tablename__ = "vendor_payment"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    vendor_bill_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("vendor_bill.id"), nullable=False)
    amount: Mapped[Numeric] = mapped_column(MONEY, nullable=False)
    payment_date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class InventoryItem(Base):
    __tablename__ = "inventory_item"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    code: Mapped[str | None] = mapped_column(Text)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text)
    unit: Mapped[str | None] = mapped_column(Text)
    cost_price: Mapped[Numeric | None] = mapped_column(MONEY)
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class InventoryTransaction(Base):
    __tablename__ = "inventory_transaction"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    item_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("inventory_item.id"), nullable=False)
    project_id: Mapped[str | None] = mapped_column(ID_TYPE, ForeignKey("project.id"))
    type: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    reference_no: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class BankAccount(Base):
    __tablename__ = "bank_account"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class BankTransaction(Base):
    __tablename__ = "bank_transaction"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    bank_account_id: Mapped[str] = mapped_column(ID_TYPE, ForeignKey("bank_account.id"), nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Numeric] = mapped_column(MONEY, nullable=False)
    date: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    description: Mapped[str | None] = mapped_column(Text)
    reference: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class SupportRequest(Base):
    __tablename__ = "support_request"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    subject: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="open")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class MeetingRequest(Base):
    __tablename__ = "meeting_request"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=_uuid)
    subject: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
