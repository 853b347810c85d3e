from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from gst_invoicer.core.deps import get_current_user
from gst_invoicer.db.session import get_db
from gst_invoicer.models.company import Company
from gst_invoicer.models.user import User
from gst_invoicer.schemas.company import CompanyCreate, CompanyRead, CompanyUpdate
from gst_invoicer.services.activity import log_activity
from gst_invoicer.services.parties import (
    InvalidLogo,
    ResourceInUse,
    ensure_unreferenced,
    get_owned,
    store_company_logo,
)

router = APIRouter(prefix="/api/companies", tags=["companies"])
logger = logging.getLogger(__name__)

LOGO_MEDIA_TYPES = {".png": "image/png", ".jpg": "image/jpeg"}


def _get_company_or_404(db: Session, *, user: User, company_id: int) -> Company:
    company = get_owned(db, Company, user_id=user.id, record_id=company_id)
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


@router.get("", response_model=List[CompanyRead])
def list_companies(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[Company]:
    return db.query(Company).filter(Company.user_id == current_user.id).order_by(Company.name.asc()).all()


@router.post("", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
def create_company(
    company_in: CompanyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Company:
    company = Company(user_id=current_user.id, **company_in.model_dump())
    db.add(company)
    db.flush()
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="COMPANY_CREATED",
        message=company.name,
        payload={"company_id": company.id},
    )
    db.commit()
    db.refresh(company)
    return company


@router.get("/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Company:
    return _get_company_or_404(db, user=current_user, company_id=company_id)


@router.put("/{company_id}", response_model=CompanyRead)
def update_company(
    company_id: int,
    company_update: CompanyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Company:
    company = _get_company_or_404(db, user=current_user, company_id=company_id)
    update_data = company_update.model_dump(exclude_unset=True)
    if "name" in update_data and not update_data["name"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Company name is required")
    for field, value in update_data.items():
        setattr(company, field, value)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="COMPANY_UPDATED",
        message=company.name,
        payload={"company_id": company.id, "fields": sorted(update_data.keys())},
    )
    db.commit()
    db.refresh(company)
    return company


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company(
    company_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    company = _get_company_or_404(db, user=current_user, company_id=company_id)
    try:
        ensure_unreferenced(db, company)
    except ResourceInUse as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    logo_path = company.logo_path
    db.delete(company)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="COMPANY_DELETED",
        message=company.name,
        payload={"company_id": company_id},
    )
    db.commit()
    if logo_path:
        Path(logo_path).unlink(missing_ok=True)


@router.post("/{company_id}/logo", response_model=CompanyRead)
def upload_company_logo(
    company_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Company:
    company = _get_company_or_404(db, user=current_user, company_id=company_id)
    payload = file.file.read()
    try:
        store_company_logo(company, payload)
    except InvalidLogo as exc:
        logger.warning("company_logo_rejected", extra={"user_id": current_user.id})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    db.commit()
    db.refresh(company)
    return company


@router.get("/{company_id}/logo")
def get_company_logo(
    company_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FileResponse:
    company = _get_company_or_404(db, user=current_user, company_id=company_id)
    if not company.logo_path or not Path(company.logo_path).exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Logo not found")
    path = Path(company.logo_path)
    return FileResponse(path, media_type=LOGO_MEDIA_TYPES.get(path.suffix, "application/octet-stream"))
