from app.models.user import User
from app.models.drug import Drug, DrugCategory, DrugForm
from app.models.vendor import Vendor
from app.models.stock_transaction import StockTransaction
from app.models.notification import Notification
from app.models.audit_log import AuditLogEntry
from app.models.sale import Sale, SaleItem, SalePayment

__all__ = [
    "User", "Drug", "DrugCategory", "DrugForm", "Vendor", "StockTransaction",
    "Notification", "AuditLogEntry", "Sale", "SaleItem", "SalePayment",
]
