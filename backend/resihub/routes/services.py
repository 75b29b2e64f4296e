"""
ResiHub Backend — Service Listing Route Handlers
==================================================

What:  CRUD, nearby search and reviews for service listings under /api/service.
How:   Every route requires a session token (get_current_user). Multipart
       forms are converted into ServiceForm + ImageUpload values and handed
       to ServiceCatalog.

Routes:
    POST   /api/service                 create (multipart, field `images`)
    GET    /api/service?latitude&longitude   services within 10km, nearest first
    GET    /api/service/{id}            one service with its reviews
    PUT    /api/service/{id}            edit (owner only, multipart)
    DELETE /api/service/{id}            delete (owner only)
    POST   /api/service/{id}/reviews    add a review
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from resihub.database import get_db_session
from resihub.dependencies import get_current_user, get_service_catalog
from resihub.schemas.auth import ErrorResponse, MessageResponse
from resihub.schemas.service import (
    ReviewRequest,
    ServiceCreatedResponse,
    ServiceForm,
    ServiceResponse,
    ServiceUpdatedResponse,
)
from resihub.services.file_service import ImageUpload
from resihub.services.service_catalog import ServiceCatalog, parse_coordinates
from resihub.services.tokens import TokenPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/service", tags=["Services"])

_ERRORS = {
    400: {"description": "Invalid input", "model": MessageResponse},
    401: {"description": "Missing or invalid token", "model": MessageResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


async def read_images(files: Optional[List[UploadFile]]) -> List[ImageUpload]:
    """Read multipart files into memory; parts without a file name are ignored."""
    images = []
    for upload in files or []:
        try:
            if not upload.filename:
                continue
            images.append(
                ImageUpload(
                    filename=upload.filename,
                    content_type=upload.content_type or "",
                    content=await upload.read(),
                )
            )
        finally:
            await upload.close()
    return images


def build_form(
    title: Optional[str],
    description: Optional[str],
    coordinates: Optional[str],
    address: Optional[str],
    available_hours: Optional[str],
) -> ServiceForm:
    return ServiceForm(
        title=title,
        description=description,
        coordinates=parse_coordinates(coordinates),
        address=address,
        available_hours=available_hours,
    )


@router.post(
    "",
    status_code=201,
    response_model=ServiceCreatedResponse,
    responses={**_ERRORS, 404: {"description": "Service provider not found", "model": MessageResponse}},
    summary="Create a service listing",
)
async def create_service(
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    coordinates: Optional[str] = Form(default=None, description="JSON array [longitude, latitude]"),
    address: Optional[str] = Form(default=None),
    available_hours: Optional[str] = Form(default=None, alias="availableHours"),
    images: Optional[List[UploadFile]] = File(default=None, description="Up to 5 jpeg/png images, 5MB each"),
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    catalog: ServiceCatalog = Depends(get_service_catalog),
) -> ServiceCreatedResponse:
    form = build_form(title, description, coordinates, address, available_hours)
    uploads = await read_images(images)
    logger.info("Create service request: %d image(s)", len(uploads))
    return await catalog.create(db, user.id, form, uploads)


@router.get(
    "",
    response_model=List[ServiceResponse],
    responses=_ERRORS,
    summary="Services near a point",
)
async def nearby_services(
    latitude: Optional[float] = Query(default=None),
    longitude: Optional[float] = Query(default=None),
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    catalog: ServiceCatalog = Depends(get_service_catalog),
) -> List[ServiceResponse]:
    return await catalog.nearby(db, latitude, longitude)


@router.get(
    "/{service_id}",
    response_model=ServiceResponse,
    responses={**_ERRORS, 404: {"description": "Service not found", "model": MessageResponse}},
    summary="Get one service",
)
async def get_service(
    service_id: str,
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    catalog: ServiceCatalog = Depends(get_service_catalog),
) -> ServiceResponse:
    return await catalog.get(db, service_id)


@router.put(
    "/{service_id}",
    response_model=ServiceUpdatedResponse,
    responses={
        **_ERRORS,
        403: {"description": "Caller does not own the service", "model": MessageResponse},
        404: {"description": "Service not found", "model": MessageResponse},
    },
    summary="Edit an owned service",
)
async def edit_service(
    service_id: str,
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    coordinates: Optional[str] = Form(default=None, description="JSON array [longitude, latitude]"),
    address: Optional[str] = Form(default=None),
    available_hours: Optional[str] = Form(default=None, alias="availableHours"),
    images: Optional[List[UploadFile]] = File(default=None),
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    catalog: ServiceCatalog = Depends(get_service_catalog),
) -> ServiceUpdatedResponse:
    form = build_form(title, description, coordinates, address, available_hours)
    uploads = await read_images(images)
    return await catalog.edit(db, service_id, user.id, form, uploads)


@router.delete(
    "/{service_id}",
    response_model=MessageResponse,
    responses={
        **_ERRORS,
        403: {"description": "Caller does not own the service", "model": MessageResponse},
        404: {"description": "Service not found", "model": MessageResponse},
    },
    summary="Delete an owned service",
)
async def delete_service(
    service_id: str,
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    catalog: ServiceCatalog = Depends(get_service_catalog),
) -> MessageResponse:
    return await catalog.delete(db, service_id, user.id)


@router.post(
    "/{service_id}/reviews",
    status_code=201,
    response_model=MessageResponse,
    responses={**_ERRORS, 404: {"description": "Service not found", "model": MessageResponse}},
    summary="Review a service",
)
async def add_review(
    service_id: str,
    body: ReviewRequest,
    user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    catalog: ServiceCatalog = Depends(get_service_catalog),
) -> MessageResponse:
    return await catalog.add_review(
        db,
        service_id,
        user,
        rating=body.rating,
        comment=body.comment,
        role=body.role,
    )
