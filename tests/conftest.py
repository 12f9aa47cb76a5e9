"""
Shared pytest fixtures.

The API is exercised through httpx's ASGITransport with the database,
geocoder and image storage dependencies replaced by in-memory doubles, so no
MongoDB, Google API key or S3 bucket is needed.
"""

import copy
import os
import tempfile

os.environ["JWT_SECRET"] = "test-secret"
os.environ["GOOGLE_API_KEY"] = "test-key-not-real"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="places_test_uploads_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from bson import ObjectId
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError

from app.models.place import Coordinates
from app.repositories.places import PairedWriteError, _oid
from app.security.auth import create_access_token, hash_password


class FakePlaceRepository:
    """In-memory stand-in for PlaceRepository with switchable failures."""

    def __init__(self):
        self.users = {}
        self.places = {}
        self.fail_lookups = False
        self.fail_writes = False
        self.fail_mid_transaction = False

    def add_user(self, name="Alice", email="alice@example.com", password="secret-password"):
        oid = ObjectId()
        self.users[oid] = {
            "_id": oid,
            "name": name,
            "email": email,
            "password": hash_password(password),
            "image": "uploads/images/avatar.png",
            "places": [],
        }
        return str(oid)

    def add_place(self, user_id, title="Empire State Building", image="uploads/images/esb.png"):
        user_oid = ObjectId(user_id)
        oid = ObjectId()
        self.places[oid] = {
            "_id": oid,
            "title": title,
            "description": "A famous sky scraper",
            "address": "20 W 34th St, New York, NY 10001",
            "location": {"lat": 40.7484405, "lng": -73.9878584},
            "image": image,
            "creator": user_oid,
        }
        self.users[user_oid]["places"].append(oid)
        return str(oid)

    def _check_lookup(self):
        if self.fail_lookups:
            raise OperationFailure("simulated lookup failure")

    async def find_place(self, place_id):
        self._check_lookup()
        oid = _oid(place_id)
        return copy.deepcopy(self.places.get(oid)) if oid else None

    async def find_place_with_creator(self, place_id):
        place = await self.find_place(place_id)
        if place is None:
            return None
        creator = self.users.get(place["creator"])
        if creator is None:
            del place["creator"]
        else:
            place["creator"] = copy.deepcopy(creator)
        return place

    async def find_user(self, user_id):
        self._check_lookup()
        oid = _oid(user_id)
        return copy.deepcopy(self.users.get(oid)) if oid else None

    async def find_user_with_places(self, user_id):
        user = await self.find_user(user_id)
        if user is None:
            return None
        user["places"] = [copy.deepcopy(self.places[p]) for p in user["places"] if p in self.places]
        return user

    async def create_place_for_user(self, place_doc, user_id):
        users_before, places_before = copy.deepcopy(self.users), copy.deepcopy(self.places)
        try:
            user_oid = ObjectId(user_id)
            oid = ObjectId()
            doc = {**place_doc, "_id": oid, "creator": user_oid}
            self.places[oid] = doc
            if self.fail_mid_transaction:
                raise OperationFailure("simulated transaction failure")
            if user_oid not in self.users:
                raise PairedWriteError(f"user {user_id} not found")
            self.users[user_oid]["places"].append(oid)
        except PyMongoError:
            self.users, self.places = users_before, places_before
            raise
        return copy.deepcopy(doc)

    async def update_place_fields(self, place_id, title, description):
        if self.fail_writes:
            raise OperationFailure("simulated write failure")
        place = self.places.get(_oid(place_id))
        if place is None:
            return None
        place.update(title=title, description=description)
        return copy.deepcopy(place)

    async def delete_place_for_user(self, place_id, user_id):
        users_before, places_before = copy.deepcopy(self.users), copy.deepcopy(self.places)
        try:
            place_oid = ObjectId(place_id)
            if self.places.pop(place_oid, None) is None:
                raise PairedWriteError(f"place {place_id} not found")
            if self.fail_mid_transaction:
                raise OperationFailure("simulated transaction failure")
            places = self.users[ObjectId(user_id)]["places"]
            self.users[ObjectId(user_id)]["places"] = [p for p in places if p != place_oid]
        except PyMongoError:
            self.users, self.places = users_before, places_before
            raise


class FakeUserRepository:
    def __init__(self, place_repo):
        # Shares the user collection with the place repository
        self.place_repo = place_repo
        self.fail_lookups = False
        self.fail_writes = False

    async def list_users(self):
        if self.fail_lookups:
            raise OperationFailure("simulated lookup failure")
        return [{k: v for k, v in u.items() if k != "password"} for u in self.place_repo.users.values()]

    async def find_by_email(self, email):
        if self.fail_lookups:
            raise OperationFailure("simulated lookup failure")
        for user in self.place_repo.users.values():
            if user["email"] == email:
                return copy.deepcopy(user)
        return None

    async def create_user(self, doc):
        if self.fail_writes:
            raise OperationFailure("simulated write failure")
        if any(u["email"] == doc["email"] for u in self.place_repo.users.values()):
            raise DuplicateKeyError("E11000 duplicate key error")
        oid = ObjectId()
        user = {**doc, "_id": oid, "places": []}
        self.place_repo.users[oid] = user
        return copy.deepcopy(user)


class FakeGeocoder:
    def __init__(self):
        self.known = {"1600 Pennsylvania Ave": Coordinates(lat=38.8976763, lng=-77.0365298)}
        self.calls = []

    async def get_coordinates(self, address):
        self.calls.append(address)
        if address not in self.known:
            raise HTTPException(status_code=422, detail="Could not find location for the specified address.")
        return self.known[address]


class FakeImageStorage:
    def __init__(self):
        self.saved = []
        self.deleted = []
        self.fail_delete = False

    async def save(self, content, content_type):
        ref = f"uploads/images/{len(self.saved)}.png"
        self.saved.append(ref)
        return ref

    async def delete(self, ref):
        if self.fail_delete:
            raise FileNotFoundError(ref)
        self.deleted.append(ref)


@pytest.fixture
def place_repo():
    return FakePlaceRepository()


@pytest.fixture
def user_repo(place_repo):
    return FakeUserRepository(place_repo)


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def image_storage():
    return FakeImageStorage()


@pytest.fixture
def auth_headers():
    """Build an Authorization header carrying a valid token for a user id."""
    def _headers(user_id, email="alice@example.com"):
        return {"Authorization": f"Bearer {create_access_token(user_id, email)}"}
    return _headers


@pytest_asyncio.fixture
async def test_client(place_repo, user_repo, geocoder, image_storage):
    """HTTPX AsyncClient talking to the FastAPI app with doubles injected."""
    from app.deps import get_place_repository, get_user_repository
    from app.main import app
    from app.services.geocoding import get_geocoder
    from app.services.image_storage import get_image_storage

    app.dependency_overrides[get_place_repository] = lambda: place_repo
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_image_storage] = lambda: image_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
