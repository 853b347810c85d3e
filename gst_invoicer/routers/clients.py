from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from gst_invoicer.core.deps import get_current_user
from gst_invoicer.db.session import get_db
from gst_invoicer.models.client import Client
from gst_invoicer.models.user import User
from gst_invoicer.schemas.client import ClientCreate, ClientRead, ClientUpdate
from gst_invoicer.services.activity import log_activity
from gst_invoicer.services.parties import ResourceInUse, ensure_unreferenced, get_owned

router = APIRouter(prefix="/api/clients", tags=["clients"])


def _get_client_or_404(db: Session, *, user: User, client_id: int) -> Client:
    client = get_owned(db, Client, user_id=user.id, record_id=client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client


@router.get("", response_model=List[ClientRead])
def list_clients(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[Client]:
    query = db.query(Client).filter(Client.user_id == current_user.id)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Client.name).like(term),
                func.lower(Client.company_name).like(term),
                func.lower(Client.gst_number).like(term),
            )
        )
    return query.order_by(Client.name.asc()).all()


@router.post("", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def create_client(
    client_in: ClientCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Client:
    client = Client(user_id=current_user.id, **client_in.model_dump())
    db.add(client)
    db.flush()
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="CLIENT_CREATED",
        message=client.display_name,
        payload={"client_id": client.id},
    )
    db.commit()
    db.refresh(client)
    return client


@router.get("/{client_id}", response_model=ClientRead)
def get_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Client:
    return _get_client_or_404(db, user=current_user, client_id=client_id)


@router.put("/{client_id}", response_model=ClientRead)
def update_client(
    client_id: int,
    client_update: ClientUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Client:
    client = _get_client_or_404(db, user=current_user, client_id=client_id)
    update_data = client_update.model_dump(exclude_unset=True)
    if "name" in update_data and not update_data["name"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Client name is required")
    for field, value in update_data.items():
        setattr(client, field, value)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="CLIENT_UPDATED",
        message=client.display_name,
        payload={"client_id": client.id, "fields": sorted(update_data.keys())},
    )
    db.commit()
    db.refresh(client)
    return client


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    client = _get_client_or_404(db, user=current_user, client_id=client_id)
    try:
        ensure_unreferenced(db, client)
    except ResourceInUse as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    db.delete(client)
    log_activity(
        db,
        actor_user_id=current_user.id,
        activity_type="CLIENT_DELETED",
        message=client.display_name,
        payload={"client_id": client_id},
    )
    db.commit()
