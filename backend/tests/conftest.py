import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.main import app
from app.models.drug import Drug, DrugCategory, DrugForm
from app.models.user import User
from app.models.vendor import Vendor
from app.services.drug_service import save_drug

PASSWORD = "password123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _user(db, username, role, full_name):
    user = User(
        username=username,
        full_name=full_name,
        role=role,
        hashed_password=get_password_hash(PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    return _user(db, "admin", "admin", "Alice Admin")


@pytest.fixture
def pharmacist(db):
    return _user(db, "pharm", "pharmacist", "Peter Pharmacist")


def _headers(user):
    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id), role=user.role)}"}


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture
def pharmacist_headers(pharmacist):
    return _headers(pharmacist)


@pytest.fixture
def forms(db):
    rows = {name: DrugForm(name=name) for name in ("Box", "Tablet", "Bottle")}
    db.add_all(rows.values())
    db.commit()
    return {name: form.id for name, form in rows.items()}


@pytest.fixture
def category(db):
    row = DrugCategory(name="Analgesics")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def vendor(db):
    row = Vendor(name="City Pharma Distributors", phone="0700000000")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def drug(db, forms, category):
    """Bought by the box of 10 tablets at 100; unit cost 10, POS 12.5, prescription 15."""
    row = save_drug(
        db,
        Drug(stock=0, active=True),
        name="Paracetamol 500mg",
        category_id=category.id,
        purchase_form_id=forms["Box"],
        sale_form_id=forms["Tablet"],
        purchase_price=100,
        units_per_purchase=10,
        pos_markup=0.25,
        prescription_markup=0.5,
        min_stock=20,
    )
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def stocked_drug(db, drug):
    drug.stock = 100
    db.commit()
    db.refresh(drug)
    return drug
