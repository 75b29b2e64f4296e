"""
ResiHub Backend — Service Catalog Tests
=========================================

What:  Listing lifecycle, ownership, nearby search and reviews.
How:   Central SQLite database from the `databases` fixture; object storage
       is the `fake_storage` double.
"""

import uuid

import pytest

from resihub.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from resihub.models.identity import ServiceProvider
from resihub.schemas.service import ServiceForm
from resihub.services.file_service import ImageUpload, ImageUploadService
from resihub.services.service_catalog import (
    ServiceCatalog,
    bounding_box,
    capitalize_role,
    haversine_meters,
    parse_coordinates,
)
from resihub.services.tokens import TokenPayload

# Times Square and points around it
ORIGIN = (40.7580, -73.9855)


JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"


def jpeg(name="a.jpg"):
    return ImageUpload(filename=name, content_type="image/jpeg", content=JPEG_BYTES)


def form(title="Plumbing", lng=ORIGIN[1], lat=ORIGIN[0], **extra):
    return ServiceForm(title=title, description="Fix leaks", coordinates=(lng, lat), **extra)


class TestGeoHelpers:

    def test_haversine_zero(self):
        assert haversine_meters(*ORIGIN, *ORIGIN) == 0

    def test_haversine_one_degree_latitude(self):
        assert haversine_meters(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)

    def test_bounding_box_contains_radius(self):
        min_lat, max_lat, min_lng, max_lng = bounding_box(*ORIGIN, 10_000)
        assert haversine_meters(*ORIGIN, max_lat, ORIGIN[1]) >= 9_999.999
        assert haversine_meters(*ORIGIN, ORIGIN[0], max_lng) >= 10_000
        assert min_lat < ORIGIN[0] < max_lat
        assert min_lng < ORIGIN[1] < max_lng

    def test_parse_coordinates(self):
        assert parse_coordinates("[-73.9855, 40.758]") == (-73.9855, 40.758)

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_parse_coordinates_absent(self, raw):
        assert parse_coordinates(raw) is None

    @pytest.mark.parametrize("raw", ["not json", "[1]", "[1, 2, 3]", '{"lng": 1}', "[200, 10]", '["a", "b"]'])
    def test_parse_coordinates_invalid(self, raw):
        with pytest.raises(ValidationError):
            parse_coordinates(raw)

    @pytest.mark.parametrize("raw,expected", [("resident", "Resident"), ("MANAGER", "Manager"), ("Resident", "Resident")])
    def test_capitalize_role(self, raw, expected):
        assert capitalize_role(raw) == expected


class TestServiceCatalog:

    @pytest.fixture(autouse=True)
    def setup(self, databases, fake_storage):
        self.databases = databases
        self.storage = fake_storage
        self.catalog = ServiceCatalog(uploads=ImageUploadService(storage=fake_storage))

    async def provider(self, add_identity, name="Ace Plumbing"):
        row = await add_identity(ServiceProvider, email=f"{uuid.uuid4().hex}@x.com", name=name)
        return str(row.id)

    async def create(self, provider_id, **kwargs):
        async with self.databases.central_session() as db:
            return await self.catalog.create(db, provider_id, **kwargs)

    async def nearby(self, lat, lng):
        async with self.databases.central_session() as db:
            return await self.catalog.nearby(db, lat, lng)

    # ── create ────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_create_uploads_images(self, add_identity):
        provider_id = await self.provider(add_identity)

        result = await self.create(provider_id, form=form(), images=[jpeg("a.jpg"), jpeg("b.jpg")])

        assert result.message == "Service created successfully"
        assert len(result.images) == 2
        services = await self.nearby(*ORIGIN)
        assert services[0].images == result.images
        assert services[0].serviceProviderName == "Ace Plumbing"
        assert services[0].location.address == "Unknown Location"
        assert services[0].location.coordinates == (ORIGIN[1], ORIGIN[0])

    @pytest.mark.asyncio
    async def test_create_unknown_provider(self):
        with pytest.raises(NotFoundError, match="Service provider not found"):
            await self.create(str(uuid.uuid4()), form=form())

    @pytest.mark.asyncio
    async def test_create_for_non_uuid_caller(self):
        with pytest.raises(NotFoundError, match="Service provider not found"):
            await self.create("not-a-uuid", form=form())

    @pytest.mark.asyncio
    async def test_create_requires_coordinates(self, add_identity):
        provider_id = await self.provider(add_identity)

        with pytest.raises(ValidationError, match="Coordinates are required"):
            await self.create(provider_id, form=ServiceForm(title="Plumbing"))

    @pytest.mark.asyncio
    async def test_create_rejects_gif_before_upload(self, add_identity):
        provider_id = await self.provider(add_identity)
        gif = ImageUpload(filename="a.gif", content_type="image/gif", content=b"g")

        with pytest.raises(ValidationError, match="Images only"):
            await self.create(provider_id, form=form(), images=[gif])
        self.storage.upload_bytes.assert_not_called()

    # ── get ───────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_get_missing(self):
        async with self.databases.central_session() as db:
            with pytest.raises(NotFoundError, match="Service not found"):
                await self.catalog.get(db, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_get_returns_reviews(self, add_identity):
        provider_id = await self.provider(add_identity)
        await self.create(provider_id, form=form())
        service_id = (await self.nearby(*ORIGIN))[0].id
        user = TokenPayload(id="r1", role="Resident", apartment_complex_name="Oakwood", status="approved", phone=None)

        async with self.databases.central_session() as db:
            await self.catalog.add_review(db, str(service_id), user, rating=5, comment="Great")
        async with self.databases.central_session() as db:
            service = await self.catalog.get(db, str(service_id))

        assert len(service.reviews) == 1
        review = service.reviews[0]
        assert review.rating == 5
        assert review.userId == "r1"
        assert review.userModel == "Resident"
        assert review.name == "Unknown"

    # ── nearby ────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lat,lng", [(None, -73.9), (40.7, None), (None, None)])
    async def test_nearby_requires_both_coordinates(self, lat, lng):
        with pytest.raises(ValidationError, match="Latitude and longitude are required"):
            await self.nearby(lat, lng)

    @pytest.mark.asyncio
    async def test_nearby_filters_and_sorts_by_distance(self, add_identity):
        provider_id = await self.provider(add_identity)
        # ~5.5km north, ~1.1km north, ~55km north
        await self.create(provider_id, form=form(title="far-ish", lat=ORIGIN[0] + 0.05))
        await self.create(provider_id, form=form(title="close", lat=ORIGIN[0] + 0.01))
        await self.create(provider_id, form=form(title="too far", lat=ORIGIN[0] + 0.5))

        services = await self.nearby(*ORIGIN)

        assert [s.title for s in services] == ["close", "far-ish"]
        assert services[0].distanceMeters < services[1].distanceMeters <= 10_000

    @pytest.mark.asyncio
    async def test_nearby_across_antimeridian(self, add_identity):
        provider_id = await self.provider(add_identity)
        await self.create(provider_id, form=form(title="east", lat=0.0, lng=179.99))

        services = await self.nearby(0.0, -179.99)

        assert [s.title for s in services] == ["east"]

    # ── edit ──────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_edit_by_owner_replaces_images(self, add_identity):
        provider_id = await self.provider(add_identity)
        created = await self.create(provider_id, form=form(), images=[jpeg("old.jpg")])
        service_id = (await self.nearby(*ORIGIN))[0].id

        async with self.databases.central_session() as db:
            result = await self.catalog.edit(
                db,
                str(service_id),
                provider_id,
                ServiceForm(title="Emergency Plumbing", address="5th Ave"),
                images=[jpeg("new.jpg")],
            )

        assert result.message == "Service updated successfully"
        assert result.service.title == "Emergency Plumbing"
        assert result.service.description == "Fix leaks"
        assert result.service.location.address == "5th Ave"
        assert result.service.images[0].endswith("-new.jpg")
        deleted_key = self.storage.delete_object.call_args.args[0]
        assert created.images[0].endswith(deleted_key.split("/", 1)[1])

    @pytest.mark.asyncio
    async def test_edit_by_other_provider_forbidden(self, add_identity):
        owner = await self.provider(add_identity)
        other = await self.provider(add_identity, name="Other")
        await self.create(owner, form=form())
        service_id = (await self.nearby(*ORIGIN))[0].id

        async with self.databases.central_session() as db:
            with pytest.raises(PermissionDeniedError, match="You are not authorized"):
                await self.catalog.edit(db, str(service_id), other, ServiceForm(title="Mine"))

    @pytest.mark.asyncio
    async def test_edit_missing(self, add_identity):
        provider_id = await self.provider(add_identity)

        async with self.databases.central_session() as db:
            with pytest.raises(NotFoundError):
                await self.catalog.edit(db, str(uuid.uuid4()), provider_id, ServiceForm())

    # ── delete ────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_delete_removes_row_and_images(self, add_identity):
        provider_id = await self.provider(add_identity)
        await self.create(provider_id, form=form(), images=[jpeg()])
        service_id = (await self.nearby(*ORIGIN))[0].id

        async with self.databases.central_session() as db:
            result = await self.catalog.delete(db, str(service_id), provider_id)

        assert result.message == "Service deleted successfully"
        assert self.storage.delete_object.call_count == 1
        assert await self.nearby(*ORIGIN) == []

    @pytest.mark.asyncio
    async def test_delete_survives_storage_failure(self, add_identity):
        provider_id = await self.provider(add_identity)
        await self.create(provider_id, form=form(), images=[jpeg()])
        service_id = (await self.nearby(*ORIGIN))[0].id
        self.storage.delete_object.return_value = False

        async with self.databases.central_session() as db:
            await self.catalog.delete(db, str(service_id), provider_id)

        assert await self.nearby(*ORIGIN) == []

    @pytest.mark.asyncio
    async def test_delete_by_other_provider_forbidden(self, add_identity):
        owner = await self.provider(add_identity)
        other = await self.provider(add_identity, name="Other")
        await self.create(owner, form=form())
        service_id = (await self.nearby(*ORIGIN))[0].id

        async with self.databases.central_session() as db:
            with pytest.raises(PermissionDeniedError):
                await self.catalog.delete(db, str(service_id), other)

    # ── reviews ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_review_invalid_id(self):
        user = TokenPayload(id="r1", role="Resident", apartment_complex_name=None, status=None, phone=None)

        async with self.databases.central_session() as db:
            with pytest.raises(ValidationError, match="Invalid service ID"):
                await self.catalog.add_review(db, "nope", user, rating=4)

    @pytest.mark.asyncio
    async def test_review_missing_service(self):
        user = TokenPayload(id="r1", role="Resident", apartment_complex_name=None, status=None, phone=None)

        async with self.databases.central_session() as db:
            with pytest.raises(NotFoundError, match="Service not found"):
                await self.catalog.add_review(db, str(uuid.uuid4()), user, rating=4)

    @pytest.mark.asyncio
    async def test_review_role_from_body_is_capitalised(self, add_identity):
        provider_id = await self.provider(add_identity)
        await self.create(provider_id, form=form())
        service_id = (await self.nearby(*ORIGIN))[0].id
        user = TokenPayload(id="m1", role="Manager", apartment_complex_name="Oakwood", status="approved", phone=None, name="Ann")

        async with self.databases.central_session() as db:
            result = await self.catalog.add_review(db, str(service_id), user, rating=3, role="resident")

        assert result.message == "Review added successfully"
        service = (await self.nearby(*ORIGIN))[0]
        assert service.reviews[0].userModel == "Resident"
        assert service.reviews[0].name == "Ann"
