from datetime import date

import pytest

from steelerp.config import settings
from steelerp.models import (
    Attendance,
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
    Vendor,
    VendorBill,
    VendorPayment,
)


@pytest.fixture()
def costed_project(save, project, welder):
    first, _ = save(
        Invoice(id="inv-1", invoice_number="INV-001", project_id=project.id, amount=10000, status="pending"),
        Invoice(id="inv-2", invoice_number="INV-002", project_id=project.id, amount=5000, status="pending"),
    )
    save(
        Payment(invoice_id=first.id, amount=6000),
        LabourAllocation(employee_id=welder.id, project_id=project.id, start_date=date(2026, 1, 1)),
        Attendance(employee_id=welder.id, project_id=project.id, date=date(2026, 1, 5), status="present", overtime_hours=2),
        Attendance(employee_id=welder.id, project_id=project.id, date=date(2026, 1, 6), status="present", overtime_hours=2),
        Attendance(employee_id=welder.id, project_id=project.id, date=date(2026, 1, 7), status="half_day"),
        Attendance(employee_id=welder.id, project_id=project.id, date=date(2026, 1, 8), status="absent"),
    )
    save(
        InventoryItem(id="item-beam", name="I-Beam", cost_price=20, current_stock=100, min_stock=10),
        Vendor(id="vendor-1", name="Tata Structurals"),
        PurchaseRequest(id="pr-1", project_id=project.id, item_name="Bolts"),
    )
    save(
        InventoryTransaction(item_id="item-beam", project_id=project.id, type="issue_to_project", quantity=10),
        InventoryTransaction(item_id="item-beam", project_id=project.id, type="scrap", quantity=2),
        InventoryTransaction(item_id="item-beam", project_id=project.id, type="stock_in", quantity=50),
        PurchaseOrder(id="po-1", po_number="PO-1", purchase_request_id="pr-1", vendor_id="vendor-1", total_amount=3000),
    )
    save(
        VendorBill(id="bill-1", bill_number="VB-1", vendor_id="vendor-1", purchase_order_id="po-1", amount=3000),
    )
    save(
        VendorPayment(vendor_bill_id="bill-1", amount=1000),
        Transaction(type="expense", category="project_expense", amount=500, project_id=project.id),
        Transaction(
            type="expense",
            category="project_expense",
            amount=250,
            description=f"Crane hire for {project.id}",
        ),
        Transaction(type="expense", category="office", amount=999, description=f"Stationery {project.id}"),
    )
    return project


def test_project_financials_report(client, admin, auth, costed_project) -> None:
    with client:
        resp = client.get(f"/api/projects/{costed_project.id}/financials", headers=auth(admin))
        assert resp.status_code == 200
        data = resp.json()

    assert data["project"] == {
        "id": costed_project.id,
        "title": "Warehouse Frame",
        "status": "in_progress",
        "client": "Ravi Client",
    }
    assert data["revenue"] == {"invoiced": 15000, "paid": 6000, "pending": 9000, "overpaid": False}

    costs = data["costs"]
    assert costs["labour"] == {"amount": pytest.approx(270), "employees": 1, "attendanceDays": 4}
    assert costs["inventory"]["amount"] == pytest.approx(240)
    assert costs["inventory"]["items"] == 3
    assert sorted(costs["inventory"]["categories"]) == ["issue_to_project", "scrap", "stock_in"]
    assert costs["vendor"] == {"amount": 3000, "paid": 1000, "pending": 2000, "orders": 1}
    assert costs["other"] == pytest.approx(750)
    assert costs["total"] == pytest.approx(
        costs["labour"]["amount"] + costs["inventory"]["amount"] + costs["vendor"]["amount"] + costs["other"]
    )

    profitability = data["profitability"]
    assert profitability["grossProfit"] == pytest.approx(10740)
    assert profitability["grossProfitMargin"] == "71.60%"
    assert profitability["cashProfit"] == pytest.approx(3740)
    assert profitability["roi"] == "252.11%"

    assert data["costBreakdown"] == {"labour": "6.3%", "inventory": "5.6%", "vendor": "70.4%", "other": "17.6%"}
    assert data["estimatedVsActual"] == {
        "estimated": 50000,
        "actual": pytest.approx(4260),
        "variance": "45740.00",
        "variancePercent": "91.5%",
    }


def test_empty_project_never_divides_by_zero(client, admin, auth, save, customer) -> None:
    bare = save(Project(title="Shed", status="pending", client_id=customer.id))
    with client:
        resp = client.get(f"/api/projects/{bare.id}/financials", headers=auth(admin))
        assert resp.status_code == 200
        data = resp.json()

    assert data["revenue"]["invoiced"] == 0
    assert data["profitability"]["grossProfitMargin"] == "0.00%"
    assert data["profitability"]["roi"] == "N/A"
    assert data["costBreakdown"] == {"labour": "0%", "inventory": "0%", "vendor": "0%", "other": "0%"}
    assert data["estimatedVsActual"]["variancePercent"] == "N/A"


def test_stock_in_does_not_count_towards_project_cost(client, admin, auth, save, project) -> None:
    save(InventoryItem(id="item-plate", name="Plate", cost_price=75, current_stock=40))
    save(InventoryTransaction(item_id="item-plate", project_id=project.id, type="stock_in", quantity=4))
    with client:
        before = client.get(f"/api/projects/{project.id}/financials", headers=auth(admin)).json()
        assert before["costs"]["inventory"]["amount"] == 0

        save(InventoryTransaction(item_id="item-plate", project_id=project.id, type="issue_to_project", quantity=4))
        after = client.get(f"/api/projects/{project.id}/financials", headers=auth(admin)).json()
        assert after["costs"]["inventory"]["amount"] == pytest.approx(300)


def test_overpaid_project_is_flagged(client, admin, auth, save, project) -> None:
    invoice = save(Invoice(invoice_number="INV-9", project_id=project.id, amount=100))
    save(Payment(invoice_id=invoice.id, amount=150))
    with client:
        data = client.get(f"/api/projects/{project.id}/financials", headers=auth(admin)).json()
    assert data["revenue"]["pending"] == -50
    assert data["revenue"]["overpaid"] is True


def test_description_link_can_be_disabled(client, admin, auth, save, project, monkeypatch) -> None:
    save(
        Transaction(type="expense", category="project_expense", amount=400, project_id=project.id),
        Transaction(type="expense", category="project_expense", amount=80, description=f"Paint {project.id}"),
    )
    monkeypatch.setattr(settings, "legacy_description_cost_link", False)
    with client:
        data = client.get(f"/api/projects/{project.id}/financials", headers=auth(admin)).json()
    assert data["costs"]["other"] == 400


def test_client_can_only_read_own_project(client, auth, save, customer, project) -> None:
    stranger = save(User(full_name="Other Client", email="other@client.test", role="client"))
    with client:
        own = client.get(f"/api/projects/{project.id}/financials", headers=auth(customer))
        assert own.status_code == 200

        foreign = client.get(f"/api/projects/{project.id}/financials", headers=auth(stranger))
        assert foreign.status_code == 403
        assert foreign.json() == {"error": "Forbidden"}


def test_financials_requires_a_session(client, project) -> None:
    with client:
        missing = client.get(f"/api/projects/{project.id}/financials")
        assert missing.status_code == 401
        assert missing.json() == {"error": "Unauthorized"}

        forged = client.get(
            f"/api/projects/{project.id}/financials",
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert forged.status_code == 401


def test_unknown_project_is_not_found(client, admin, auth) -> None:
    with client:
        resp = client.get("/api/projects/does-not-exist/financials", headers=auth(admin))
        assert resp.status_code == 404
        assert resp.json() == {"error": "Project not found"}
