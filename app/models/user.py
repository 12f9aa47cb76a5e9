from pydantic import BaseModel, EmailStr, Field
from typing import List


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserPublic(BaseModel):
    id: str
    name: str
    email: EmailStr
    image: str
    places: List[str] = []


class UserListResponse(BaseModel):
    users: List[UserPublic]


class Token(BaseModel):
    userId: str
    email: EmailStr
    token: str
    token_type: str = "bearer"
