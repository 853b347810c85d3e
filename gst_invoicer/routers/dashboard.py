from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gst_invoicer.core.deps import get_current_user
from gst_invoicer.db.session import get_db
from gst_invoicer.models.user import User
from gst_invoicer.schemas.dashboard import DashboardStats
from gst_invoicer.schemas.invoice import InvoiceLedgerRow
from gst_invoicer.services.invoices import dashboard_stats

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DashboardStats:
    stats = dashboard_stats(db, user_id=current_user.id)
    stats["recent_invoices"] = [InvoiceLedgerRow.model_validate(invoice) for invoice in stats["recent_invoices"]]
    return DashboardStats(**stats)
