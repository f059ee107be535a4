"""
Demo item API models.

Items carry an email and phone number so the redaction of logged
bodies can be observed end to end.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Item(BaseModel):
    """A stored demo item."""

    id: str = Field(description="Item identifier")
    name: str = Field(description="Item name")
    description: str = Field(default="", description="Free-form description")
    email: Optional[str] = Field(default=None, description="Contact email (sensitive)")
    phone_number: Optional[str] = Field(default=None, description="Contact phone (sensitive)")
    created_at: datetime = Field(description="Creation timestamp")


class CreateItemRequest(BaseModel):
    """Request body for item creation."""

    name: str = Field(min_length=1, max_length=200, description="Item name")
    description: str = Field(default="", max_length=2000, description="Free-form description")
    email: Optional[str] = Field(default=None, description="Contact email")
    phone_number: Optional[str] = Field(default=None, description="Contact phone")
