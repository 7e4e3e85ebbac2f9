"""Create all tables and bootstrap reference data. Run on app startup.

If no users exist, a default admin is created. Its password comes from
DEFAULT_ADMIN_PASSWORD or is generated randomly and printed once.
"""
import logging
import secrets

from app.core.config import settings
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.session import engine, SessionLocal
from app.models import user, drug, vendor, stock_transaction, notification, audit_log, sale  # noqa: F401 - register models
from app.models.drug import DrugForm
from app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_FORMS = ["Tablet", "Capsule", "Strip", "Box", "Bottle", "Vial", "Ampoule", "Tube", "Sachet", "Piece"]


def init_db():
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if db.query(User).count() == 0:
            password = settings.DEFAULT_ADMIN_PASSWORD or secrets.token_urlsafe(16)
            db.add(
                User(
                    username=settings.DEFAULT_ADMIN_USERNAME,
                    full_name="Administrator",
                    role="admin",
                    hashed_password=get_password_hash(password),
                )
            )
            db.commit()

            if not settings.DEFAULT_ADMIN_PASSWORD:
                # Printed only on initial setup
                print("\n" + "=" * 70)
                print("DEFAULT ADMIN USER CREATED")
                print("=" * 70)
                print(f"Username: {settings.DEFAULT_ADMIN_USERNAME}")
                print(f"Password: {password}")
                print("\nChange this password immediately after first login!")
                print("=" * 70 + "\n")

        if db.query(DrugForm).count() == 0:
            db.add_all([DrugForm(name=name) for name in DEFAULT_FORMS])
            db.commit()
            logger.info(f"Seeded {len(DEFAULT_FORMS)} drug forms")
    finally:
        db.close()
