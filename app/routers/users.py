import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import EmailStr
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.deps import get_user_repository
from app.models.user import Token, UserListResponse, UserLogin
from app.models.utils import serialize_user
from app.repositories.users import UserRepository
from app.security.auth import create_access_token, hash_password, verify_password
from app.services.image_storage import discard_image, get_image_storage, read_image

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=UserListResponse, summary="List users")
async def get_users(repo: UserRepository = Depends(get_user_repository)):
    try:
        users = await repo.list_users()
    except PyMongoError as e:
        logger.error(f"[USERS] Listing users failed: {e}")
        raise HTTPException(status_code=500, detail="Fetching users failed, please try again later.")
    return {"users": [serialize_user(u) for u in users]}


@router.post("/signup", response_model=Token, status_code=status.HTTP_201_CREATED, summary="Register a new user")
async def signup(
    name: str = Form(..., min_length=1),
    email: EmailStr = Form(...),
    password: str = Form(..., min_length=6),
    image: UploadFile = File(...),
    repo: UserRepository = Depends(get_user_repository),
    storage=Depends(get_image_storage),
):
    content = await read_image(image)

    try:
        existing = await repo.find_by_email(email)
    except PyMongoError as e:
        logger.error(f"[USERS] Email lookup failed: {e}")
        raise HTTPException(status_code=500, detail="Signing up failed, please try again later.")

    if existing:
        raise HTTPException(status_code=409, detail="User exists already, please login instead.")

    image_ref = await storage.save(content, image.content_type)
    try:
        user = await repo.create_user(
            {"name": name, "email": email, "password": hash_password(password), "image": image_ref}
        )
    except DuplicateKeyError:
        await discard_image(storage, image_ref)
        raise HTTPException(status_code=409, detail="User exists already, please login instead.")
    except PyMongoError as e:
        logger.error(f"[USERS] Creating user failed: {e}")
        await discard_image(storage, image_ref)
        raise HTTPException(status_code=500, detail="Signing up failed, please try again later.")

    user_id = str(user["_id"])
    logger.info(f"[USERS] Registered user {user_id}")
    return Token(userId=user_id, email=email, token=create_access_token(user_id, email))


@router.post("/login", response_model=Token, summary="Log in and receive a bearer token")
async def login(form: UserLogin, repo: UserRepository = Depends(get_user_repository)):
    try:
        user = await repo.find_by_email(form.email)
    except PyMongoError as e:
        logger.error(f"[USERS] Email lookup failed: {e}")
        raise HTTPException(status_code=500, detail="Logging in failed, please try again later.")

    if not user or not verify_password(form.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials, could not log you in.")

    user_id = str(user["_id"])
    return Token(userId=user_id, email=user["email"], token=create_access_token(user_id, user["email"]))
