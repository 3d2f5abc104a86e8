from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from steelerp.auth import require_admin, require_user, resolve_user
from steelerp.config import configure_logging
from steelerp.db import SessionLocal
from steelerp.executive import build_executive_summary
from steelerp.financials import build_project_financials
from steelerp.inventory import build_low_stock_alerts
from steelerp.ledger import assemble_general_ledger, post_ledger_entry
from steelerp.models import User
from steelerp.payroll import build_payroll_ledger
from steelerp.team import allocate_staff, build_team_costs

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Steel ERP Finance")


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    return resolve_user(request, db)


@app.exception_handler(StarletteHTTPException)
def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
        problems.append(f"{field}: {error['msg']}")
    return JSONResponse(status_code=400, content={"error": "; ".join(problems)})


@app.exception_handler(Exception)
def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.get("/", tags=["root"])
def read_root() -> dict:
    return {"status": "ok"}


@app.get("/health", tags=["health"])
def health_check() -> dict:
    return {"status": "healthy"}


@app.get("/api/projects/{project_id}/financials", tags=["Projects"])
def get_project_financials(
    project_id: str,
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return build_project_financials(db, project_id, require_user(user))


@app.get("/api/projects/{project_id}/team", tags=["Projects"])
def get_project_team(
    project_id: str,
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    return build_team_costs(db, project_id, require_user(user))


class StaffAllocationCreate(BaseModel):
    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {"employeeId": "5f0c...", "startDate": "2026-10-01", "endDate": "2026-12-31"}
        },
    }
    employee_id: str = Field(alias="employeeId", min_length=1)
    start_date: date = Field(alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")


@app.post("/api/projects/{project_id}/team", tags=["Projects"])
def create_staff_allocation(
    project_id: str,
    payload: StaffAllocationCreate,
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    require_admin(user)
    return allocate_staff(db, project_id, payload.employee_id, payload.start_date, payload.end_date)


@app.get("/api/finance/general-ledger", tags=["Finance"])
def get_general_ledger(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    category: Optional[str] = Query(default=None),
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    require_admin(user)
    return assemble_general_ledger(db, start_date, end_date, project_id, category)


class LedgerEntryCreate(BaseModel):
    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "type": "project_expense",
                "entityId": "5f0c...",
                "amount": -1250.0,
                "description": "Crane hire",
            }
        },
    }
    type: Optional[str] = None
    entity_id: Optional[str] = Field(default=None, alias="entityId")
    amount: float
    description: Optional[str] = None


@app.post("/api/finance/general-ledger", tags=["Finance"])
def create_ledger_entry(
    payload: LedgerEntryCreate,
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    admin = require_admin(user)
    return post_ledger_entry(db, admin, payload.type, payload.entity_id, payload.amount, payload.description)


@app.get("/api/dashboard/executive-summary", tags=["Dashboard"])
def get_executive_summary(
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    require_admin(user)
    return build_executive_summary(db)


@app.get("/api/payroll/{payroll_id}/ledger", tags=["Payroll"])
def get_payroll_ledger(
    payroll_id: str,
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    require_admin(user)
    return build_payroll_ledger(db, payroll_id)


@app.get("/api/inventory/low-stock-alerts", tags=["Inventory"])
def get_low_stock_alerts(
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    require_admin(user)
    return build_low_stock_alerts(db)
