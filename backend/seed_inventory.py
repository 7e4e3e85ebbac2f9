"""Seed a demo clinic inventory: categories, a vendor, drugs and opening stock.

Opening stock goes through the restock workflow as the bootstrap admin, so
it shows up in restock history and the audit log like any other delivery.
"""
from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.models.drug import Drug, DrugCategory, DrugForm
from app.models.user import User
from app.models.vendor import Vendor
from app.schemas.restock import RestockItem
from app.services.drug_service import save_drug
from app.services.restock_service import create_restock_batch

CATEGORIES = ["Analgesics", "Antibiotics", "Antacids", "Antihistamines", "Supplements"]

# name, category, purchase form, sale form, price per purchase unit, units per purchase,
# pos markup, prescription markup, min stock, opening stock (purchase units)
DRUGS = [
    ("Paracetamol 500mg", "Analgesics", "Box", "Tablet", 100, 100, 0.30, 0.50, 200, 5),
    ("Ibuprofen 400mg", "Analgesics", "Box", "Tablet", 150, 100, 0.30, 0.50, 100, 3),
    ("Amoxicillin 500mg", "Antibiotics", "Box", "Capsule", 420, 21, 0.25, 0.40, 42, 4),
    ("Azithromycin 250mg", "Antibiotics", "Strip", "Tablet", 90, 6, 0.25, 0.40, 12, 10),
    ("Omeprazole 20mg", "Antacids", "Box", "Capsule", 300, 30, 0.30, 0.45, 30, 2),
    ("Cetirizine 10mg", "Antihistamines", "Strip", "Tablet", 25, 10, 0.40, 0.60, 20, 10),
    ("Cough Syrup 100ml", "Antihistamines", "Bottle", "Bottle", 80, 1, 0.35, 0.50, 5, 12),
    ("Vitamin B Complex", "Supplements", "Bottle", "Tablet", 180, 60, 0.40, 0.60, 60, 3),
]


def seed_inventory():
    init_db()
    db = SessionLocal()
    try:
        admin = db.query(User).filter(User.role == "admin").first()
        if not admin:
            print("No admin user found. Database not initialized properly.")
            return

        forms = {f.name: f.id for f in db.query(DrugForm).all()}
        for name in CATEGORIES:
            if not db.query(DrugCategory).filter(DrugCategory.name == name).first():
                db.add(DrugCategory(name=name))
        db.commit()
        categories = {c.name: c.id for c in db.query(DrugCategory).all()}

        vendor = db.query(Vendor).filter(Vendor.name == "City Pharma Distributors").first()
        if not vendor:
            vendor = Vendor(name="City Pharma Distributors", contact_person="Front desk", phone="0700000000")
            db.add(vendor)
            db.commit()
            db.refresh(vendor)

        items = []
        for name, category, p_form, s_form, price, upp, pos, rx, min_stock, opening in DRUGS:
            drug = db.query(Drug).filter(Drug.name == name).first()
            if drug:
                continue
            drug = save_drug(
                db,
                Drug(stock=0, active=True),
                name=name,
                category_id=categories[category],
                purchase_form_id=forms[p_form],
                sale_form_id=forms[s_form],
                purchase_price=price,
                units_per_purchase=upp,
                pos_markup=pos,
                prescription_markup=rx,
                min_stock=min_stock,
            )
            db.flush()
            items.append(RestockItem(drug_id=drug.id, purchase_unit="purchase", quantity=opening))
        db.commit()

        if not items:
            print("Inventory already seeded.")
            return

        result = create_restock_batch(db, vendor.id, "OPENING-STOCK", items, admin)
        print(f"{result['message']}: {len(items)} drugs stocked from '{vendor.name}'")
        for d in db.query(Drug).order_by(Drug.name).all():
            print(f"  {d.name:<24} stock {d.stock:>5}  POS {float(d.pos_price):>8.2f}  Rx {float(d.prescription_price):>8.2f}")
    finally:
        db.close()


if __name__ == "__main__":
    seed_inventory()
