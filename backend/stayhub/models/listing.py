"""
Listing model: the bookable resource published by a host.

Key design decisions:
- Location is stored structured (address, city, country, optional coordinates)
- `is_active` is a soft-delete flag; reservations keep pointing at old listings
- `booking_version` is bumped by every reservation commit and acts as the
  optimistic lock that serializes commits for one listing across processes
"""

from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Float, Boolean, JSON,
    ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.orm import relationship

from stayhub.db.base import Base, TimestampMixin


class Listing(Base, TimestampMixin):
    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    images = Column(JSON, nullable=False, default=list)
    amenities = Column(JSON, nullable=False, default=list)
    max_guests = Column(Integer, nullable=False, default=1)
    bedrooms = Column(Integer, nullable=False, default=0)
    bathrooms = Column(Float, nullable=False, default=0)

    host_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Optimistic locking version counter for reservation commits
    booking_version = Column(Integer, nullable=False, default=1)

    host = relationship("User", lazy="raise")

    __table_args__ = (
        CheckConstraint("price > 0", name="check_listing_price_positive"),
        CheckConstraint("max_guests >= 1", name="check_listing_max_guests"),
        CheckConstraint("bedrooms >= 0", name="check_listing_bedrooms"),
        CheckConstraint("bathrooms >= 0", name="check_listing_bathrooms"),
        Index("ix_listings_price", "price"),
        Index("ix_listings_max_guests", "max_guests"),
        Index("ix_listings_city_country", "city", "country"),
    )

    @property
    def primary_image(self):
        return self.images[0] if self.images else None

    @property
    def location(self) -> str:
        return f"{self.city}, {self.country}"

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title={self.title}, price={self.price}, host={self.host_id})>"
