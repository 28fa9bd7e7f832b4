"""Reference/lookup options stored in DB for dropdowns and hierarchies (boards, grades, cities, areas...)."""
import uuid

from sqlalchemy import Column, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship
from app.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class ReferenceOption(Base):
    __tablename__ = "reference_options"

    id = Column(String(32), primary_key=True, default=_new_id)
    type = Column(String(64), nullable=False, index=True)  # BOARD, GRADE, CITY, AREA_<CITY_CODE>, custom keys
    value = Column(String(128), nullable=False)
    label = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    # Absent for root types (BOARD, CITY); deleting a parent removes its subtree
    parent_id = Column(String(32), ForeignKey("reference_options.id", ondelete="CASCADE"), nullable=True, index=True)

    # Open key/value map; CITY uses whatsappLink
    meta = Column(JSON, nullable=True)

    parent = relationship("ReferenceOption", back_populates="children", remote_side=[id])
    children = relationship("ReferenceOption", back_populates="parent", cascade="all, delete-orphan")
