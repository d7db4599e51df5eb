"""
Association table recording which users favorited which properties.
"""

from sqlalchemy import Table, Column, ForeignKey, DateTime, Uuid, func
from estate_api.database import Base


# Composite primary key makes (user, property) unique at the storage level
property_favorites = Table(
    "property_favorites",
    Base.metadata,
    Column(
        "user_id",
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "property_id",
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
    Column(
        "created_at",
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    ),
)
