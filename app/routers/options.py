"""Reference options API: list by type (scoped to a parent), list types, create, update, delete."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_option_or_404
from app.models.reference_option import ReferenceOption
from app.schemas.options import (
    MessageResponse,
    OptionItem,
    OptionListResponse,
    OptionPayload,
    OptionResponse,
    OptionTypeItem,
    OptionTypeListResponse,
)
from app.services.option_types import derive_value, normalize_type_key, type_label

router = APIRouter(prefix="/options", tags=["options"])
log = logging.getLogger("uvicorn.error")


def _resolve_parent(db: Session, parent_id: str | None, option_id: str | None = None) -> ReferenceOption | None:
    """Load the parent, refusing unknown ids and cycles (an option under itself or its own subtree)."""
    if not parent_id:
        return None
    parent = db.query(ReferenceOption).filter(ReferenceOption.id == parent_id).first()
    if not parent:
        raise HTTPException(status_code=400, detail="Parent option not found")
    node = parent
    while node is not None:
        if option_id and node.id == option_id:
            raise HTTPException(status_code=400, detail="An option cannot be placed under itself")
        node = node.parent
    return parent


@router.get("/types", response_model=OptionTypeListResponse)
def list_option_types(db: Session = Depends(get_db)):
    tags = [row[0] for row in db.query(ReferenceOption.type).distinct().order_by(ReferenceOption.type).all()]
    return OptionTypeListResponse(data=[OptionTypeItem(value=t, label=type_label(t)) for t in tags])


@router.get("", response_model=OptionListResponse)
def list_options(
    type: str = Query(..., description="Type tag, e.g. BOARD, GRADE, CITY, AREA_BHOPAL"),
    parent: str | None = Query(None, description="Only items under this parent id"),
    db: Session = Depends(get_db),
):
    q = db.query(ReferenceOption).filter(ReferenceOption.type == normalize_type_key(type))
    if parent:
        q = q.filter(ReferenceOption.parent_id == parent)
    q = q.order_by(ReferenceOption.sort_order, ReferenceOption.label)
    return OptionListResponse(data=[OptionItem.from_model(o) for o in q.all()])


@router.get("/{option_id}", response_model=OptionResponse)
def get_option(option: ReferenceOption = Depends(get_option_or_404)):
    return OptionResponse(data=OptionItem.from_model(option))


@router.post("", response_model=OptionResponse, status_code=201)
def create_option(data: OptionPayload, db: Session = Depends(get_db)):
    parent = _resolve_parent(db, data.parent)
    option = ReferenceOption(
        type=normalize_type_key(data.type),
        label=data.label,
        value=data.value or derive_value(data.label),
        sort_order=data.sort_order or 0,
        parent_id=parent.id if parent else None,
        meta=data.metadata,
    )
    db.add(option)
    db.commit()
    db.refresh(option)
    log.info("Option created: %s %s (%s)", option.type, option.value, option.id)
    return OptionResponse(data=OptionItem.from_model(option))


@router.put("/{option_id}", response_model=OptionResponse)
def update_option(
    data: OptionPayload,
    option: ReferenceOption = Depends(get_option_or_404),
    db: Session = Depends(get_db),
):
    option.type = normalize_type_key(data.type)
    option.label = data.label
    option.value = data.value or derive_value(data.label)
    if data.parent is not None:
        option.parent_id = _resolve_parent(db, data.parent, option_id=option.id).id
    if data.metadata is not None:
        option.meta = data.metadata
    if data.sort_order is not None:
        option.sort_order = data.sort_order
    db.commit()
    db.refresh(option)
    log.info("Option updated: %s %s (%s)", option.type, option.value, option.id)
    return OptionResponse(data=OptionItem.from_model(option))


@router.delete("/{option_id}", response_model=MessageResponse)
def delete_option(
    option: ReferenceOption = Depends(get_option_or_404),
    db: Session = Depends(get_db),
):
    # Children go with their parent (relationship cascade)
    option_id, label = option.id, option.label
    db.delete(option)
    db.commit()
    log.info("Option deleted: %s (%s)", label, option_id)
    return MessageResponse(message="Option deleted")
