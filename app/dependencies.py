"""Shared dependencies: DB session, option lookup."""
from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.reference_option import ReferenceOption


def get_option_or_404(
    option_id: str,
    db: Session = Depends(get_db),
) -> ReferenceOption:
    option = db.query(ReferenceOption).filter(ReferenceOption.id == option_id).first()
    if not option:
        raise HTTPException(status_code=404, detail="Option not found")
    return option
