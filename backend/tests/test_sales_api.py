import warnings
from datetime import datetime, timezone

from app.models.audit_log import AuditLogEntry
from app.models.sale import Sale
from app.schemas.sale import SaleItemIn
from app.services.sales_service import create_sale, todays_summary


def test_pos_sale_decrements_stock(client, db, pharmacist_headers, stocked_drug):
    body = {"items": [{"drugId": stocked_drug.id, "quantity": 4}], "payments": {"cash": 50}}

    r = client.post("/api/sales", json=body, headers=pharmacist_headers)

    assert r.status_code == 201
    sale = r.json()
    assert sale["saleType"] == "pos"
    assert sale["totalAmount"] == 50
    assert sale["items"][0]["pricePerUnit"] == 12.5
    assert sale["payments"] == {"cash": 50}
    db.refresh(stocked_drug)
    assert stocked_drug.stock == 96


def test_dispense_uses_prescription_price(client, db, pharmacist_headers, stocked_drug):
    body = {"items": [{"drugId": stocked_drug.id, "quantity": 2}]}

    r = client.post("/api/pharmacy/dispense", json=body, headers=pharmacist_headers)

    assert r.status_code == 201
    assert r.json()["saleType"] == "prescription"
    assert r.json()["totalAmount"] == 30
    db.refresh(stocked_drug)
    assert stocked_drug.stock == 98


def test_explicit_price_overrides_default(client, pharmacist_headers, stocked_drug):
    body = {"items": [{"drugId": stocked_drug.id, "quantity": 1, "pricePerUnit": 11}]}
    r = client.post("/api/sales", json=body, headers=pharmacist_headers)
    assert r.json()["totalAmount"] == 11


def test_sale_beyond_stock_changes_nothing(client, db, pharmacist_headers, stocked_drug):
    body = {
        "items": [
            {"drugId": stocked_drug.id, "quantity": 60},
            {"drugId": stocked_drug.id, "quantity": 60},
        ]
    }

    r = client.post("/api/sales", json=body, headers=pharmacist_headers)

    assert r.status_code == 400
    assert r.json()["message"].startswith("Insufficient stock for Paracetamol 500mg")
    db.refresh(stocked_drug)
    assert stocked_drug.stock == 100
    assert db.query(Sale).count() == 0


def test_sale_of_unstocked_drug(client, db, pharmacist_headers, drug):
    r = client.post("/api/sales", json={"items": [{"drugId": drug.id, "quantity": 1}]}, headers=pharmacist_headers)
    assert r.status_code == 400
    db.refresh(drug)
    assert drug.stock == 0


def test_sale_needs_items(client, pharmacist_headers):
    r = client.post("/api/sales", json={"items": []}, headers=pharmacist_headers)
    assert r.status_code == 400
    assert r.json() == {"message": "At least one item is required"}


def test_list_and_today(client, pharmacist_headers, stocked_drug):
    body = {"items": [{"drugId": stocked_drug.id, "quantity": 2}], "payments": {"mpesa": 25}}
    client.post("/api/sales", json=body, headers=pharmacist_headers)
    client.post("/api/pharmacy/dispense", json=body, headers=pharmacist_headers)

    sales = client.get("/api/sales", headers=pharmacist_headers).json()
    assert len(sales) == 2
    assert {s["saleType"] for s in sales} == {"pos", "prescription"}

    today = client.get("/api/sales/today", headers=pharmacist_headers).json()
    assert today["count"] == 2
    assert today["total"] == 55
    assert today["payments"] == {"mpesa": 50}


def test_sale_audit_and_daily_summary_use_an_aware_utc_clock(db, pharmacist, stocked_drug):
    with warnings.catch_warnings():
        warnings.filterwarnings("error", message=".*utcnow.*", category=DeprecationWarning)
        create_sale(db, [SaleItemIn(drug_id=stocked_drug.id, quantity=1)], {"cash": 12.5}, pharmacist)
        summary = todays_summary(db)

    assert summary["date"] == datetime.now(timezone.utc).date().isoformat()
    assert summary["count"] == 1
    entry = db.query(AuditLogEntry).filter(AuditLogEntry.entity_type == "sale").one()
    assert entry.user_id == pharmacist.id
