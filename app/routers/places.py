import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile, status
from pymongo.errors import PyMongoError

from app.deps import get_place_repository
from app.models.place import MessageResponse, PlaceListResponse, PlaceResponse, PlaceUpdate
from app.models.utils import serialize_doc
from app.repositories.places import PlaceRepository
from app.security.auth import AuthContext, get_auth_context
from app.services.geocoding import Geocoder, get_geocoder
from app.services.image_storage import discard_image, get_image_storage, read_image

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{place_id}", response_model=PlaceResponse, summary="Get a place by id")
async def get_place_by_id(place_id: str, repo: PlaceRepository = Depends(get_place_repository)):
    try:
        place = await repo.find_place(place_id)
    except PyMongoError as e:
        logger.error(f"[PLACES] Lookup of place {place_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to find the place you are looking for. Try again.")

    if not place:
        raise HTTPException(status_code=404, detail="Could not find a place for the provided id.")

    return {"place": serialize_doc(place)}


@router.get("/user/{user_id}", response_model=PlaceListResponse, summary="List the places a user created")
async def get_places_by_user_id(user_id: str, repo: PlaceRepository = Depends(get_place_repository)):
    try:
        user = await repo.find_user_with_places(user_id)
    except PyMongoError as e:
        logger.error(f"[PLACES] Lookup of places for user {user_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Fetching places failed, please try again later.")

    # Unknown user and user without places both answer 404
    if not user or not user.get("places"):
        raise HTTPException(status_code=404, detail="Could not find places for the provided user id.")

    return {"places": [serialize_doc(p) for p in user["places"]]}


@router.post("/", response_model=PlaceResponse, status_code=status.HTTP_201_CREATED, summary="Create a place")
async def create_place(
    title: str = Form(..., min_length=1),
    description: str = Form(..., min_length=5),
    address: str = Form(..., min_length=1),
    image: UploadFile = File(...),
    auth: AuthContext = Depends(get_auth_context),
    repo: PlaceRepository = Depends(get_place_repository),
    geocoder: Geocoder = Depends(get_geocoder),
    storage=Depends(get_image_storage),
):
    content = await read_image(image)

    # Geocoder errors carry their own status and message
    coordinates = await geocoder.get_coordinates(address)

    try:
        user = await repo.find_user(auth.user_id)
    except PyMongoError as e:
        logger.error(f"[PLACES] Lookup of user {auth.user_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Creating place failed, please try again.")

    if not user:
        raise HTTPException(status_code=404, detail="Could not find user for provided id.")

    image_ref = await storage.save(content, image.content_type)
    place_doc = {
        "title": title,
        "description": description,
        "address": address,
        "location": coordinates.model_dump(),
        "image": image_ref,
    }

    try:
        place = await repo.create_place_for_user(place_doc, auth.user_id)
    except PyMongoError as e:
        logger.error(f"[PLACES] Create transaction for user {auth.user_id} failed: {e}")
        await discard_image(storage, image_ref)
        raise HTTPException(status_code=500, detail="Creating place failed, please try again.")

    logger.info(f"[PLACES] Created place {place['_id']} for user {auth.user_id}")
    return {"place": serialize_doc(place)}


@router.patch("/{place_id}", response_model=PlaceResponse, summary="Update a place's title and description")
async def update_place(
    place_id: str,
    payload: PlaceUpdate,
    auth: AuthContext = Depends(get_auth_context),
    repo: PlaceRepository = Depends(get_place_repository),
):
    try:
        place = await repo.find_place(place_id)
    except PyMongoError as e:
        logger.error(f"[PLACES] Lookup of place {place_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Fetching place failed. Please try again later.")

    if not place:
        raise HTTPException(status_code=404, detail="Could not find a place for the provided id.")

    if str(place["creator"]) != auth.user_id:
        logger.info(f"[PLACES] User {auth.user_id} denied edit of place {place_id}")
        raise HTTPException(status_code=403, detail="You are not allowed to edit this place.")

    try:
        updated = await repo.update_place_fields(place_id, payload.title, payload.description)
    except PyMongoError as e:
        logger.error(f"[PLACES] Saving place {place_id} failed: {e}")
        raise HTTPException(
            status_code=500,
            detail="Something went wrong, could not save your updated place. Please try again later.",
        )

    if not updated:
        raise HTTPException(status_code=404, detail="Could not find a place for the provided id.")

    return {"place": serialize_doc(updated)}


@router.delete("/{place_id}", response_model=MessageResponse, summary="Delete a place")
async def delete_place(
    place_id: str,
    background_tasks: BackgroundTasks,
    auth: AuthContext = Depends(get_auth_context),
    repo: PlaceRepository = Depends(get_place_repository),
    storage=Depends(get_image_storage),
):
    try:
        place = await repo.find_place_with_creator(place_id)
    except PyMongoError as e:
        logger.error(f"[PLACES] Lookup of place {place_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Something went wrong, could not delete place.")

    if not place:
        raise HTTPException(status_code=404, detail="Could not find place for this id.")

    creator = place.get("creator") or {}
    if str(creator.get("_id")) != auth.user_id:
        logger.info(f"[PLACES] User {auth.user_id} denied delete of place {place_id}")
        raise HTTPException(status_code=403, detail="You are not allowed to delete this place.")

    try:
        await repo.delete_place_for_user(place_id, auth.user_id)
    except PyMongoError as e:
        logger.error(f"[PLACES] Delete transaction for place {place_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Something went wrong, could not delete place.")

    # Runs after the response is sent; its outcome never changes the response
    background_tasks.add_task(discard_image, storage, place.get("image"))

    logger.info(f"[PLACES] Deleted place {place_id}")
    return {"message": "Deleted place."}
