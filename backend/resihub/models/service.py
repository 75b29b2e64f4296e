"""
ResiHub Backend — Service Listing Models
==========================================

What:  ORM models for services offered by service providers and the reviews
       residents and managers leave on them.
Where: Central database (`services`, `service_reviews`).

Location is stored as plain latitude/longitude columns; the "nearby" search
prefilters with a bounding box and ranks by great-circle distance in the
service layer.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from resihub.database import CentralBase


class Service(CentralBase):
    """
    A service listing owned by one service provider.

    Ownership:
        `service_provider_id` is the provider's id as carried in the session
        token; only that provider may edit or delete the listing.
    """

    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Public object-storage URLs
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="Unknown Location")
    available_hours: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    service_provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    service_provider_name: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    reviews: Mapped[List["ServiceReview"]] = relationship(
        back_populates="service",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ServiceReview.date",
    )

    __table_args__ = (
        Index("idx_services_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, title={self.title!r})>"


class ServiceReview(CentralBase):
    """
    A rating left on a service.

    `user_id` points into whichever database the reviewer lives in, so it is
    not a foreign key; `user_model` records the reviewer's role.
    """

    __tablename__ = "service_reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_model: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False, default="Unknown")
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    service: Mapped[Service] = relationship(back_populates="reviews")
