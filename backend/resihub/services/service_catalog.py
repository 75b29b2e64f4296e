"""
ResiHub Backend — Service Catalog (Business Logic)
====================================================

What:  Create, read, search, edit and delete service listings, and attach
       reviews to them.
How:   Stateless service; every call receives the central database session
       of the request. Image bytes go through ImageUploadService.
Who:   Called by the /api/service route handlers.

Ownership:
    A listing belongs to the service provider whose token created it. Edit and
    delete compare the caller's token id with `service_provider_id`.

Nearby search:
    ┌──────────────────┐    ┌──────────────────┐    ┌──────────────────┐
    │  Bounding box    │───▶│  Haversine       │───▶│  Sort by         │
    │  (indexed SQL)   │    │  distance ≤ R    │    │  distance        │
    └──────────────────┘    └──────────────────┘    └──────────────────┘
"""

import json
import logging
import math
import uuid
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from resihub.config import settings
from resihub.exceptions import (
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from resihub.models.identity import ServiceProvider
from resihub.models.service import Service, ServiceReview
from resihub.schemas.auth import MessageResponse
from resihub.schemas.service import (
    Location,
    ReviewResponse,
    ServiceCreatedResponse,
    ServiceForm,
    ServiceResponse,
    ServiceUpdatedResponse,
)
from resihub.services.file_service import ImageUpload, ImageUploadService, image_upload_service
from resihub.services.tokens import TokenPayload

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6_371_000.0


# ── Geo helpers ───────────────────────────────────────────────────────────
def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(
    latitude: float, longitude: float, radius_meters: float
) -> Tuple[float, float, float, float]:
    """
    (min_lat, max_lat, min_lng, max_lng) enclosing the circle of `radius_meters`.

    The longitude half-width is the widest point of the spherical cap, which
    lies poleward of `latitude`. When the cap reaches a pole the longitude
    span covers the whole globe.
    """
    angular = radius_meters / EARTH_RADIUS_METERS
    phi = math.radians(latitude)
    d_lat = math.degrees(angular)
    if abs(phi) + angular >= math.pi / 2:
        d_lng = 180.0
    else:
        d_lng = math.degrees(math.asin(math.sin(angular) / math.cos(phi)))
    return (
        max(-90.0, latitude - d_lat),
        min(90.0, latitude + d_lat),
        longitude - d_lng,
        longitude + d_lng,
    )


def parse_coordinates(raw: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Parse the `coordinates` form field: a JSON array `[longitude, latitude]`.

    Returns None for an absent/blank field. Raises ValidationError otherwise
    when the value is not two numbers within range.
    """
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw)
        longitude, latitude = (float(v) for v in value)
    except (ValueError, TypeError) as e:
        raise ValidationError(
            message="Coordinates must be a JSON array [longitude, latitude]",
            field="coordinates",
        ) from e
    _check_range(latitude, longitude)
    return longitude, latitude


def _check_range(latitude: float, longitude: float) -> None:
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        raise ValidationError(
            message="Coordinates are out of range",
            field="coordinates",
            context={"latitude": latitude, "longitude": longitude},
        )


def _parse_service_id(service_id: Any) -> uuid.UUID:
    try:
        return uuid.UUID(str(service_id))
    except ValueError as e:
        raise ValidationError(message="Invalid service ID", field="id") from e


def capitalize_role(role: str) -> str:
    """'resident' / 'RESIDENT' → 'Resident'."""
    return role[:1].upper() + role[1:].lower()


def to_response(service: Service, distance: Optional[float] = None) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        title=service.title,
        description=service.description,
        images=list(service.images or []),
        location=Location(
            coordinates=(service.longitude, service.latitude),
            address=service.address,
        ),
        availableHours=service.available_hours,
        serviceProvider=service.service_provider_id,
        serviceProviderName=service.service_provider_name,
        reviews=[
            ReviewResponse(
                id=review.id,
                userId=review.user_id,
                userModel=review.user_model,
                name=review.name,
                rating=review.rating,
                comment=review.comment,
                date=review.date,
            )
            for review in service.reviews
        ],
        createdAt=service.created_at,
        distanceMeters=distance,
    )


class ServiceCatalog:
    """
    Business logic for service listings.

    Responsibilities:
        - create() / edit() / delete(): provider-owned listing lifecycle
        - get() / nearby(): reads, open to any authenticated caller
        - add_review(): residents and managers rating a listing

    Error Handling Strategy:
        Application exceptions propagate untouched. SQLAlchemy errors are
        wrapped in DatabaseError so the handler answers 500 without leaking
        driver details.
    """

    def __init__(
        self,
        uploads: Optional[ImageUploadService] = None,
        radius_meters: Optional[float] = None,
    ):
        self.uploads = uploads or image_upload_service
        self.radius_meters = radius_meters or settings.nearby_radius_meters

    async def _load(self, db: AsyncSession, service_id: uuid.UUID) -> Service:
        result = await db.execute(select(Service).where(Service.id == service_id))
        service = result.scalar_one_or_none()
        if service is None:
            raise NotFoundError(resource="Service", resource_id=str(service_id))
        return service

    async def _load_owned(self, db: AsyncSession, service_id: Any, provider_id: str) -> Service:
        try:
            parsed = uuid.UUID(str(service_id))
        except ValueError as e:
            raise NotFoundError(resource="Service", resource_id=str(service_id)) from e
        service = await self._load(db, parsed)
        if str(service.service_provider_id) != str(provider_id):
            raise PermissionDeniedError(
                context={"service_id": str(service.id), "caller": str(provider_id)},
            )
        return service

    async def create(
        self,
        db: AsyncSession,
        provider_id: str,
        form: ServiceForm,
        images: Sequence[ImageUpload] = (),
    ) -> ServiceCreatedResponse:
        """
        Create a listing for the calling provider.

        Workflow:
            1. Check the provider exists in the central store
            2. Validate form fields, then validate and upload images
            3. Insert the row

        Raises:
            NotFoundError:    caller is not a registered service provider (404)
            ValidationError:  missing title or coordinates, bad images (400)
            FileStorageError: upload failed (500)
            DatabaseError:    insert failed (500)
        """
        try:
            provider = None
            try:
                provider_uuid = uuid.UUID(str(provider_id))
            except ValueError:
                provider_uuid = None
            if provider_uuid is not None:
                provider = await db.get(ServiceProvider, provider_uuid)
            if provider is None:
                raise NotFoundError(resource="Service provider", resource_id=str(provider_id))

            if not form.title or not form.title.strip():
                raise ValidationError(message="Title is required", field="title")
            if form.coordinates is None:
                raise ValidationError(message="Coordinates are required", field="coordinates")
            longitude, latitude = form.coordinates

            urls = await self.uploads.upload_all(images)

            service = Service(
                title=form.title.strip(),
                description=form.description or "",
                images=urls,
                latitude=latitude,
                longitude=longitude,
                address=form.address or "Unknown Location",
                available_hours=form.available_hours,
                service_provider_id=provider.id,
                service_provider_name=provider.name,
            )
            db.add(service)
            await db.flush()
            logger.info("Service %s created by provider %s", service.id, provider.id)

            return ServiceCreatedResponse(images=urls)

        except SQLAlchemyError as e:
            logger.error("Database error creating service: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not create the service. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    async def get(self, db: AsyncSession, service_id: Any) -> ServiceResponse:
        """
        Raises:
            NotFoundError: unknown or malformed id (404)
        """
        try:
            parsed = uuid.UUID(str(service_id))
        except ValueError as e:
            raise NotFoundError(resource="Service", resource_id=str(service_id)) from e
        try:
            return to_response(await self._load(db, parsed))
        except SQLAlchemyError as e:
            logger.error("Database error fetching service %s: %s", service_id, e)
            raise DatabaseError(
                message="Could not retrieve the service. Please try again.",
                context={"service_id": str(service_id)},
            ) from e

    async def nearby(
        self,
        db: AsyncSession,
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> List[ServiceResponse]:
        """
        Services within `radius_meters` of the point, nearest first.

        Query plan:
            SELECT * FROM services
            WHERE latitude BETWEEN :a AND :b AND longitude BETWEEN :c AND :d
            → idx_services_lat_lng, then exact distance in Python

        Raises:
            ValidationError: a coordinate is missing or out of range (400)
        """
        if latitude is None or longitude is None:
            raise ValidationError(message="Latitude and longitude are required")
        _check_range(latitude, longitude)

        min_lat, max_lat, min_lng, max_lng = bounding_box(latitude, longitude, self.radius_meters)
        query = select(Service).where(Service.latitude.between(min_lat, max_lat))
        # Boxes crossing the antimeridian wrap around
        if min_lng < -180.0 or max_lng > 180.0:
            if max_lng - min_lng < 360.0:
                west = min_lng + 360.0 if min_lng < -180.0 else min_lng
                east = max_lng - 360.0 if max_lng > 180.0 else max_lng
                query = query.where((Service.longitude >= west) | (Service.longitude <= east))
        else:
            query = query.where(Service.longitude.between(min_lng, max_lng))

        try:
            result = await db.execute(query)
            candidates = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error in nearby search: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not search services. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        ranked = []
        for service in candidates:
            distance = haversine_meters(latitude, longitude, service.latitude, service.longitude)
            if distance <= self.radius_meters:
                ranked.append((distance, service))
        ranked.sort(key=lambda pair: pair[0])

        logger.debug("Nearby search: %d candidates, %d in range", len(candidates), len(ranked))
        return [to_response(service, round(distance, 1)) for distance, service in ranked]

    async def edit(
        self,
        db: AsyncSession,
        service_id: Any,
        provider_id: str,
        form: ServiceForm,
        images: Sequence[ImageUpload] = (),
    ) -> ServiceUpdatedResponse:
        """
        Update the supplied fields of an owned listing.

        New images replace the old ones; the old objects are removed from
        storage after the row is updated.

        Raises:
            NotFoundError:         no such service (404)
            PermissionDeniedError: caller does not own it (403)
        """
        try:
            service = await self._load_owned(db, service_id, provider_id)

            if form.title is not None and form.title.strip():
                service.title = form.title.strip()
            if form.description is not None:
                service.description = form.description
            if form.coordinates is not None:
                service.longitude, service.latitude = form.coordinates
            if form.address:
                service.address = form.address
            if form.available_hours is not None:
                service.available_hours = form.available_hours

            replaced: List[str] = []
            if images:
                urls = await self.uploads.upload_all(images)
                replaced = list(service.images or [])
                service.images = urls

            await db.flush()
            logger.info("Service %s updated", service.id)

        except SQLAlchemyError as e:
            logger.error("Database error updating service %s: %s", service_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not update the service. Please try again.",
                context={"service_id": str(service_id)},
            ) from e

        await self.uploads.delete_all(replaced)
        return ServiceUpdatedResponse(service=to_response(service))

    async def delete(self, db: AsyncSession, service_id: Any, provider_id: str) -> MessageResponse:
        """
        Remove an owned listing together with its reviews and stored images.

        Raises:
            NotFoundError:         no such service (404)
            PermissionDeniedError: caller does not own it (403)
        """
        try:
            service = await self._load_owned(db, service_id, provider_id)
            await self.uploads.delete_all(list(service.images or []))
            await db.delete(service)
            await db.flush()
            logger.info("Service %s deleted", service_id)
        except SQLAlchemyError as e:
            logger.error("Database error deleting service %s: %s", service_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not delete the service. Please try again.",
                context={"service_id": str(service_id)},
            ) from e

        return MessageResponse(message="Service deleted successfully")

    async def add_review(
        self,
        db: AsyncSession,
        service_id: Any,
        user: TokenPayload,
        rating: int,
        comment: Optional[str] = None,
        role: Optional[str] = None,
    ) -> MessageResponse:
        """
        Attach a review written by the calling user.

        `role` from the request body wins over the token's role and is
        capitalised ('resident' → 'Resident').

        Raises:
            ValidationError: malformed service id (400)
            NotFoundError:   no such service (404)
        """
        parsed = _parse_service_id(service_id)
        try:
            service = await self._load(db, parsed)
            review = ServiceReview(
                service_id=service.id,
                user_id=str(user.id),
                user_model=capitalize_role(role) if role else user.role,
                name=user.name or "Unknown",
                rating=rating,
                comment=comment,
            )
            db.add(review)
            await db.flush()
            logger.info("Review added to service %s", service.id)
        except SQLAlchemyError as e:
            logger.error("Database error adding review to %s: %s", service_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not add the review. Please try again.",
                context={"service_id": str(service_id)},
            ) from e

        return MessageResponse(message="Review added successfully")


# ── Singleton Instance ────────────────────────────────────────────────────
service_catalog = ServiceCatalog()
