from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, JSON, DateTime, func
from typing import Dict, Any

from .authz import Base


class ResourceItem(Base):
    """Opaque record for the gated admin resources (products, pages, images, datasource types).

    Business rules for these resources live outside this service; the table only backs the
    generic routes that consume the access gate.
    """
    __tablename__ = 'resource_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    resource: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, default='')
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

__all__ = ["ResourceItem"]
