"""
ResiHub Backend — Service Listing Schemas
===========================================

What:  Pydantic models for service listings, their reviews, and the payloads
       of the create/edit/review endpoints.
How:   Responses mirror the document shape clients already consume: a GeoJSON
       style `location` with `[longitude, latitude]` coordinates and camelCase
       keys.
"""

import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class Location(BaseModel):
    type: str = "Point"
    coordinates: Tuple[float, float] = Field(description="[longitude, latitude]")
    address: str = "Unknown Location"


class ReviewResponse(BaseModel):
    id: uuid.UUID
    userId: str
    userModel: str = Field(description="Role of the reviewer")
    name: str
    rating: int
    comment: Optional[str] = None
    date: datetime


class ServiceResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    images: List[str] = Field(default_factory=list, description="Public image URLs")
    location: Location
    availableHours: Optional[str] = None
    serviceProvider: uuid.UUID
    serviceProviderName: str
    reviews: List[ReviewResponse] = Field(default_factory=list)
    createdAt: datetime
    distanceMeters: Optional[float] = Field(
        default=None,
        description="Distance from the searched point (nearby search only)",
    )


class ServiceForm(BaseModel):
    """
    Text fields of the multipart create/edit forms.

    On edit every field is optional and only supplied values change.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    coordinates: Optional[Tuple[float, float]] = Field(
        default=None,
        description="[longitude, latitude]",
    )
    address: Optional[str] = None
    available_hours: Optional[str] = None


class ReviewRequest(BaseModel):
    """Body of POST /api/service/{id}/reviews."""
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)
    role: Optional[str] = Field(
        default=None,
        description="Reviewer role override, e.g. 'resident'; defaults to the token's role",
    )


class ServiceCreatedResponse(BaseModel):
    message: str = "Service created successfully"
    images: List[str]


class ServiceUpdatedResponse(BaseModel):
    message: str = "Service updated successfully"
    service: ServiceResponse
