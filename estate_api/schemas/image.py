"""
Pydantic schemas for property image responses.
"""

from pydantic import Field
from typing import Optional
import uuid

from estate_api.schemas.common import CamelModel


class PropertyImageResponse(CamelModel):
    """Image as shown in listing responses."""

    id: uuid.UUID
    url: str = Field(..., description="Public URL of the image")
    public_id: str = Field(..., description="Storage identifier")
    is_primary: bool = Field(False, description="Whether this is the listing's primary image")
    display_order: int = Field(0, description="Gallery position")
    width: Optional[int] = None
    height: Optional[int] = None
