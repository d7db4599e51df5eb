"""
PropertyImage model for listing photos.
Stores the public URL, storage identifier and file metadata of each uploaded image.
"""

from sqlalchemy import String, Integer, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_api.database import Base
import uuid
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from estate_api.models.property import Property


class PropertyImage(Base):
    """
    Uploaded image belonging to a property.
    The first uploaded image of a new listing is marked primary.
    """

    __tablename__ = "property_images"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the property this image belongs to"
    )

    url: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Public URL the image is served from"
    )

    public_id: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        unique=True,
        comment="Storage identifier (path relative to the upload directory)"
    )

    filename: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Original filename of the uploaded image"
    )

    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_primary: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether this is the primary image for the property"
    )

    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Position in the listing gallery"
    )

    property_rel: Mapped["Property"] = relationship(
        "Property",
        back_populates="images"
    )

    def __repr__(self) -> str:
        return f"<PropertyImage(id={self.id}, property_id={self.property_id}, filename={self.filename})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "url": self.url,
            "public_id": self.public_id,
            "is_primary": self.is_primary,
            "display_order": self.display_order,
            "width": self.width,
            "height": self.height,
        }
