"""Inventory: drugs, categories, forms, vendors, stats and the restock workflow.

Every route requires a logged-in user; resolving restocks and listing the
pending queue additionally require an admin.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user, require_admin
from app.core.audit import get_client_ip
from app.models.drug import Drug, DrugCategory, DrugForm
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.drug import DrugCreate, DrugUpdate, LookupCreate, LookupResponse
from app.schemas.restock import RestockBatchRequest, RestockDecision, RestockDrugRequest, RestockRecord
from app.schemas.vendor import VendorCreate, VendorUpdate, VendorResponse
from app.services import drug_service, restock_service, vendor_service

router = APIRouter()


def _drug_dict(d: Drug) -> dict:
    return {
        "id": d.id,
        "name": d.name,
        "categoryId": d.category_id,
        "category": d.category.name if d.category else None,
        "purchaseFormId": d.purchase_form_id,
        "purchaseForm": d.purchase_form.name if d.purchase_form else None,
        "saleFormId": d.sale_form_id,
        "saleForm": d.sale_form.name if d.sale_form else None,
        "purchasePrice": float(d.purchase_price),
        "unitsPerPurchase": d.units_per_purchase,
        "posMarkup": float(d.pos_markup),
        "prescriptionMarkup": float(d.prescription_markup),
        "unitCost": float(d.unit_cost),
        "posPrice": float(d.pos_price),
        "prescriptionPrice": float(d.prescription_price),
        "strength": d.strength,
        "unit": d.unit,
        "stock": d.stock,
        "minStock": d.min_stock,
        "expiryDate": d.expiry_date.isoformat() if d.expiry_date else None,
        "active": d.active,
    }


def _page(result: dict) -> dict:
    return {
        "data": [LookupResponse.model_validate(r).model_dump(by_alias=True) for r in result["data"]],
        "page": result["page"],
        "totalPages": result["total_pages"],
        "hasMore": result["has_more"],
    }


# ==============================================================================
# STATS
# ==============================================================================

@router.get("/stats")
def inventory_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    s = drug_service.inventory_stats(db)
    return {
        "totalDrugs": s["total_drugs"],
        "activeDrugs": s["active_drugs"],
        "lowStock": s["low_stock"],
        "outOfStock": s["out_of_stock"],
        "expiringSoon": s["expiring_soon"],
        "pendingRestocks": s["pending_restocks"],
        "activeVendors": s["active_vendors"],
        "stockValue": s["stock_value"],
    }


# ==============================================================================
# DRUGS (specific paths before parameterized ones)
# ==============================================================================

@router.get("/drugs/low-stock", response_model=list)
def low_stock(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [_drug_dict(d) for d in drug_service.low_stock(db)]


@router.get("/drugs/expiring", response_model=list)
def expiring(
    days: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [_drug_dict(d) for d in drug_service.expiring(db, days)]


@router.get("/drugs", response_model=list)
def list_drugs(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [_drug_dict(d) for d in drug_service.list_drugs(db, search)]


@router.post("/drugs", status_code=status.HTTP_201_CREATED)
def create_drug(
    data: DrugCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    drug = drug_service.create_drug(db, data, current_user, get_client_ip(request))
    return _drug_dict(drug)


@router.put("/drugs/{drug_id}")
def update_drug(
    drug_id: int,
    data: DrugUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    drug = drug_service.update_drug(db, drug_id, data, current_user, get_client_ip(request))
    return _drug_dict(drug)


@router.post("/drugs/{drug_id}/restock")
def restock_drug(
    drug_id: int,
    data: RestockDrugRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Single-drug restock. Admins add stock directly; others queue it for approval."""
    return restock_service.restock_drug(db, drug_id, data, current_user, ip_address=get_client_ip(request))


# ==============================================================================
# CATEGORIES & FORMS
# ==============================================================================

@router.get("/categories")
def list_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _page(drug_service.paginate(db, DrugCategory, page, limit))


@router.post("/categories", response_model=LookupResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    data: LookupCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return drug_service.create_lookup(db, DrugCategory, data.name, data.description, current_user, get_client_ip(request))


@router.delete("/categories/{category_id}", response_model=MessageResponse)
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    drug_service.delete_lookup(db, DrugCategory, category_id, current_user, get_client_ip(request))
    return {"message": "Category deleted successfully"}


@router.get("/forms")
def list_forms(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _page(drug_service.paginate(db, DrugForm, page, limit))


@router.post("/forms", response_model=LookupResponse, status_code=status.HTTP_201_CREATED)
def create_form(
    data: LookupCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return drug_service.create_lookup(db, DrugForm, data.name, data.description, current_user, get_client_ip(request))


@router.delete("/forms/{form_id}", response_model=MessageResponse)
def delete_form(
    form_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    drug_service.delete_lookup(db, DrugForm, form_id, current_user, get_client_ip(request))
    return {"message": "Form deleted successfully"}


# ==============================================================================
# VENDORS
# ==============================================================================

@router.get("/vendors", response_model=List[VendorResponse])
def list_vendors(
    active: bool = Query(False, description="Only active vendors"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return vendor_service.list_vendors(db, active_only=active)


@router.post("/vendors", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
def create_vendor(
    data: VendorCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return vendor_service.create_vendor(db, data, current_user, get_client_ip(request))


@router.put("/vendors/{vendor_id}", response_model=VendorResponse)
def update_vendor(
    vendor_id: int,
    data: VendorUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return vendor_service.update_vendor(db, vendor_id, data, current_user, get_client_ip(request))


@router.patch("/vendors/{vendor_id}/toggle-active", response_model=VendorResponse)
def toggle_vendor_active(
    vendor_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return vendor_service.toggle_active(db, vendor_id, current_user, get_client_ip(request))


# ==============================================================================
# RESTOCK WORKFLOW
# ==============================================================================

@router.get("/transactions", response_model=List[RestockRecord])
def list_transactions(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return restock_service.list_transactions(db)


@router.post("/restock", status_code=status.HTTP_201_CREATED)
def restock(
    data: RestockBatchRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Multi-line restock from one vendor. All lines commit together or not at all."""
    return restock_service.create_restock_batch(
        db,
        data.vendor_id,
        data.reference_number,
        data.items,
        current_user,
        ip_address=get_client_ip(request),
    )


@router.post("/restock/{transaction_id}/approve", response_model=MessageResponse)
def approve_restock(
    transaction_id: int,
    data: RestockDecision,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Approve or reject a pending restock. Body: {"status": "approved" | "rejected"}."""
    return restock_service.approve_or_reject(
        db, transaction_id, data.status, admin, ip_address=get_client_ip(request)
    )


@router.get("/restock/pending", response_model=List[RestockRecord])
def pending_restocks(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return restock_service.list_pending(db)


@router.get("/restock/history", response_model=List[RestockRecord])
def restock_history(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return restock_service.list_history(db, limit)
