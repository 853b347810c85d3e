from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gst_invoicer.core.deps import get_current_user
from gst_invoicer.db.session import get_db
from gst_invoicer.models.template import InvoiceTemplate
from gst_invoicer.models.user import User
from gst_invoicer.schemas.template import InvoiceTemplateCreate, InvoiceTemplateRead
from gst_invoicer.services.parties import clear_other_defaults, get_owned

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("", response_model=List[InvoiceTemplateRead])
def list_templates(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[InvoiceTemplate]:
    return (
        db.query(InvoiceTemplate)
        .filter(InvoiceTemplate.user_id == current_user.id)
        .order_by(InvoiceTemplate.is_default.desc(), InvoiceTemplate.name.asc())
        .all()
    )


@router.post("", response_model=InvoiceTemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(
    template_in: InvoiceTemplateCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> InvoiceTemplate:
    template = InvoiceTemplate(user_id=current_user.id, **template_in.model_dump())
    db.add(template)
    db.flush()
    if template.is_default:
        clear_other_defaults(db, user_id=current_user.id, keep_id=template.id)
    db.commit()
    db.refresh(template)
    return template


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    template = get_owned(db, InvoiceTemplate, user_id=current_user.id, record_id=template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    db.delete(template)
    db.commit()
