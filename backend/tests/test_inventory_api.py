from app.models.drug import Drug
from app.models.stock_transaction import StockTransaction


def _drug_body(forms, **overrides):
    body = {
        "name": "Ibuprofen 400mg",
        "category": "Analgesics",
        "purchaseFormId": forms["Box"],
        "saleFormId": forms["Tablet"],
        "purchasePrice": 100,
        "unitsPerPurchase": 10,
        "posMarkup": 0.25,
        "prescriptionMarkup": 0.5,
        "minStock": 10,
    }
    body.update(overrides)
    return body


def _restock_body(vendor, drug, quantity=5, **item):
    return {
        "vendorId": vendor.id,
        "referenceNumber": "INV-100",
        "items": [{"drugId": drug.id, "purchaseUnit": "purchase", "quantity": quantity, **item}],
    }


# --- auth guard -------------------------------------------------------------

def test_requires_authentication(client):
    r = client.get("/api/inventory/drugs")
    assert r.status_code == 401
    assert r.json() == {"message": "Not authenticated"}


def test_rejects_garbage_token(client):
    r = client.get("/api/inventory/drugs", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired token"


# --- drugs ------------------------------------------------------------------

def test_create_drug_derives_prices(client, pharmacist_headers, forms, category):
    r = client.post("/api/inventory/drugs", json=_drug_body(forms), headers=pharmacist_headers)

    assert r.status_code == 201
    data = r.json()
    assert data["stock"] == 0
    assert data["unitCost"] == 10
    assert data["posPrice"] == 12.5
    assert data["prescriptionPrice"] == 15
    assert data["category"] == "Analgesics"
    assert data["purchaseForm"] == "Box"
    assert data["saleForm"] == "Tablet"


def test_create_drug_unknown_category(client, pharmacist_headers, forms, category):
    r = client.post(
        "/api/inventory/drugs", json=_drug_body(forms, category="Vitamins"), headers=pharmacist_headers
    )
    assert r.status_code == 400
    assert r.json() == {"message": "Invalid category"}


def test_same_form_requires_ratio_of_one(client, pharmacist_headers, forms, category):
    body = _drug_body(forms, purchaseFormId=forms["Bottle"], saleFormId=forms["Bottle"])
    r = client.post("/api/inventory/drugs", json=body, headers=pharmacist_headers)
    assert r.status_code == 400

    body["unitsPerPurchase"] = 1
    r = client.post("/api/inventory/drugs", json=body, headers=pharmacist_headers)
    assert r.status_code == 201
    assert r.json()["posPrice"] == 125


def test_negative_markup_rejected(client, pharmacist_headers, forms, category):
    r = client.post("/api/inventory/drugs", json=_drug_body(forms, posMarkup=-0.1), headers=pharmacist_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Markups cannot be negative"


def test_missing_field_is_400_with_message(client, pharmacist_headers, forms, category):
    body = _drug_body(forms)
    del body["purchasePrice"]
    r = client.post("/api/inventory/drugs", json=body, headers=pharmacist_headers)
    assert r.status_code == 400
    assert "purchasePrice" in r.json()["message"]


def test_update_recomputes_prices(client, db, pharmacist_headers, drug):
    r = client.put(
        f"/api/inventory/drugs/{drug.id}",
        json={"purchasePrice": 200, "posMarkup": 0.1},
        headers=pharmacist_headers,
    )

    assert r.status_code == 200
    data = r.json()
    assert data["unitCost"] == 20
    assert data["posPrice"] == 22
    assert data["prescriptionPrice"] == 30


def test_update_can_clear_optional_fields(client, db, pharmacist_headers, drug):
    url = f"/api/inventory/drugs/{drug.id}"
    client.put(url, json={"strength": "500mg", "unit": "mg", "expiryDate": "2030-01-31"}, headers=pharmacist_headers)

    r = client.put(url, json={"strength": None, "expiryDate": None}, headers=pharmacist_headers)

    assert r.status_code == 200
    data = r.json()
    assert data["strength"] is None
    assert data["expiryDate"] is None
    assert data["unit"] == "mg"
    assert data["name"] == "Paracetamol 500mg"


def test_update_unknown_drug(client, pharmacist_headers, forms):
    r = client.put("/api/inventory/drugs/9999", json={"name": "x"}, headers=pharmacist_headers)
    assert r.status_code == 404
    assert r.json() == {"message": "Drug not found"}


def test_list_and_search_drugs(client, pharmacist_headers, drug):
    assert len(client.get("/api/inventory/drugs", headers=pharmacist_headers).json()) == 1
    r = client.get("/api/inventory/drugs", params={"search": "ibu"}, headers=pharmacist_headers)
    assert r.json() == []


def test_low_stock(client, pharmacist_headers, drug):
    r = client.get("/api/inventory/drugs/low-stock", headers=pharmacist_headers)
    assert [d["id"] for d in r.json()] == [drug.id]


def test_expiring_only_lists_drugs_in_stock(client, db, pharmacist_headers, stocked_drug):
    from datetime import date, timedelta

    stocked_drug.expiry_date = date.today() + timedelta(days=30)
    db.commit()

    r = client.get("/api/inventory/drugs/expiring", headers=pharmacist_headers)
    assert [d["name"] for d in r.json()] == ["Paracetamol 500mg"]

    r = client.get("/api/inventory/drugs/expiring", params={"days": 7}, headers=pharmacist_headers)
    assert r.json() == []


def test_stats(client, pharmacist_headers, stocked_drug, vendor):
    r = client.get("/api/inventory/stats", headers=pharmacist_headers)

    assert r.status_code == 200
    data = r.json()
    assert data["totalDrugs"] == 1
    assert data["lowStock"] == 0
    assert data["activeVendors"] == 1
    assert data["stockValue"] == 1000


# --- categories & forms -----------------------------------------------------

def test_category_lifecycle(client, pharmacist_headers, drug, category):
    r = client.post("/api/inventory/categories", json={"name": "Antibiotics"}, headers=pharmacist_headers)
    assert r.status_code == 201
    new_id = r.json()["id"]

    r = client.post("/api/inventory/categories", json={"name": "Antibiotics"}, headers=pharmacist_headers)
    assert r.status_code == 400
    assert r.json() == {"message": "Category already exists"}

    r = client.get("/api/inventory/categories", params={"page": 1, "limit": 1}, headers=pharmacist_headers)
    page = r.json()
    assert page["page"] == 1
    assert page["totalPages"] == 2
    assert page["hasMore"] is True
    assert [c["name"] for c in page["data"]] == ["Analgesics"]

    r = client.delete(f"/api/inventory/categories/{category.id}", headers=pharmacist_headers)
    assert r.status_code == 400

    r = client.delete(f"/api/inventory/categories/{new_id}", headers=pharmacist_headers)
    assert r.status_code == 200
    r = client.delete(f"/api/inventory/categories/{new_id}", headers=pharmacist_headers)
    assert r.status_code == 404


def test_form_in_use_cannot_be_deleted(client, pharmacist_headers, drug, forms):
    r = client.delete(f"/api/inventory/forms/{forms['Tablet']}", headers=pharmacist_headers)
    assert r.status_code == 400
    r = client.delete(f"/api/inventory/forms/{forms['Bottle']}", headers=pharmacist_headers)
    assert r.status_code == 200


# --- vendors ----------------------------------------------------------------

def test_vendor_lifecycle(client, pharmacist_headers):
    r = client.post(
        "/api/inventory/vendors",
        json={"name": "MedSupply Ltd", "contactPerson": "Jane"},
        headers=pharmacist_headers,
    )
    assert r.status_code == 201
    vendor = r.json()
    assert vendor["contactPerson"] == "Jane"
    assert vendor["active"] is True

    r = client.put(f"/api/inventory/vendors/{vendor['id']}", json={"phone": "0711"}, headers=pharmacist_headers)
    assert r.json()["phone"] == "0711"

    r = client.patch(f"/api/inventory/vendors/{vendor['id']}/toggle-active", headers=pharmacist_headers)
    assert r.json()["active"] is False

    r = client.get("/api/inventory/vendors", params={"active": True}, headers=pharmacist_headers)
    assert r.json() == []

    r = client.patch("/api/inventory/vendors/9999/toggle-active", headers=pharmacist_headers)
    assert r.status_code == 404


# --- restock workflow -------------------------------------------------------

def test_staff_restock_then_admin_approval(client, db, admin_headers, pharmacist_headers, vendor, drug):
    r = client.post("/api/inventory/restock", json=_restock_body(vendor, drug), headers=pharmacist_headers)
    assert r.status_code == 201
    assert r.json()["message"] == "Restock submitted for approval"

    r = client.get("/api/inventory/restock/pending", headers=pharmacist_headers)
    assert r.status_code == 403
    assert r.json() == {"message": "Not authorized"}

    r = client.get("/api/inventory/restock/pending", headers=admin_headers)
    pending = r.json()
    assert len(pending) == 1
    row = pending[0]
    assert row["drugName"] == "Paracetamol 500mg"
    assert row["purchaseQuantity"] == 5
    assert row["saleQuantity"] == 50
    assert row["purchaseForm"] == "Box"
    assert row["saleForm"] == "Tablet"
    assert row["createdBy"] == "Peter Pharmacist"
    assert row["status"] == "pending"

    r = client.post(
        f"/api/inventory/restock/{row['id']}/approve", json={"status": "approved"}, headers=pharmacist_headers
    )
    assert r.status_code == 403

    r = client.post(f"/api/inventory/restock/{row['id']}/approve", json={"status": "approved"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Restock approved successfully"}
    db.refresh(drug)
    assert drug.stock == 50

    r = client.post(f"/api/inventory/restock/{row['id']}/approve", json={"status": "rejected"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {"message": "Restock has already been approved"}

    history = client.get("/api/inventory/restock/history", headers=pharmacist_headers).json()
    assert [h["id"] for h in history] == [row["id"]]
    assert history[0]["approverName"] == "Alice Admin"


def test_rejected_restock_cannot_be_approved(client, db, admin_headers, pharmacist_headers, vendor, drug):
    client.post("/api/inventory/restock", json=_restock_body(vendor, drug), headers=pharmacist_headers)
    txn_id = db.query(StockTransaction).one().id

    client.post(f"/api/inventory/restock/{txn_id}/approve", json={"status": "rejected"}, headers=admin_headers)
    r = client.post(f"/api/inventory/restock/{txn_id}/approve", json={"status": "approved"}, headers=admin_headers)

    assert r.status_code == 400
    assert r.json() == {"message": "Restock has already been rejected"}
    db.refresh(drug)
    assert drug.stock == 0


def test_approve_validation(client, db, admin_headers, pharmacist_headers, vendor, drug):
    client.post("/api/inventory/restock", json=_restock_body(vendor, drug), headers=pharmacist_headers)
    txn_id = db.query(StockTransaction).one().id

    r = client.post(f"/api/inventory/restock/{txn_id}/approve", json={"status": "done"}, headers=admin_headers)
    assert r.status_code == 400

    r = client.post("/api/inventory/restock/9999/approve", json={"status": "approved"}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json() == {"message": "Restock not found"}


def test_admin_restock_applies_immediately(client, db, admin_headers, vendor, drug):
    body = _restock_body(vendor, drug, quantity=2, purchasePrice=150)

    r = client.post("/api/inventory/restock", json=body, headers=admin_headers)

    assert r.status_code == 201
    assert r.json()["message"] == "Restock completed successfully"
    db.refresh(drug)
    assert drug.stock == 20
    assert float(drug.pos_price) == 18.75


def test_batch_with_unknown_drug_persists_nothing(client, db, pharmacist_headers, vendor, drug):
    body = {
        "vendorId": vendor.id,
        "items": [
            {"drugId": drug.id, "quantity": 1},
            {"drugId": 9999, "quantity": 1},
            {"drugId": drug.id, "quantity": 1},
        ],
    }

    r = client.post("/api/inventory/restock", json=body, headers=pharmacist_headers)

    assert r.status_code == 404
    assert db.query(StockTransaction).count() == 0


def test_restock_with_inactive_vendor(client, db, pharmacist_headers, vendor, drug):
    vendor.active = False
    db.commit()
    r = client.post("/api/inventory/restock", json=_restock_body(vendor, drug), headers=pharmacist_headers)
    assert r.status_code == 400


def test_single_drug_restock_endpoint(client, db, admin_headers, drug):
    r = client.post(
        f"/api/inventory/drugs/{drug.id}/restock",
        json={"purchaseQuantity": 3, "batchNumber": "LOT-9"},
        headers=admin_headers,
    )

    assert r.status_code == 200
    assert r.json()["message"] == "Stock added successfully"
    db.refresh(drug)
    assert drug.stock == 30

    transactions = client.get("/api/inventory/transactions", headers=admin_headers).json()
    assert transactions[0]["batchNumber"] == "LOT-9"
    assert transactions[0]["status"] == "approved"


def test_restock_of_missing_drug(client, db, admin_headers):
    r = client.post("/api/inventory/drugs/9999/restock", json={"quantity": 1}, headers=admin_headers)
    assert r.status_code == 404
    assert db.query(Drug).count() == 0
