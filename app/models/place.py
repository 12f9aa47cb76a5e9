from pydantic import BaseModel, Field
from typing import List


class Coordinates(BaseModel):
    lat: float
    lng: float


class PlaceUpdate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=5)


class PlaceOut(BaseModel):
    id: str
    title: str
    description: str
    address: str
    location: Coordinates
    image: str
    creator: str


class PlaceResponse(BaseModel):
    place: PlaceOut


class PlaceListResponse(BaseModel):
    places: List[PlaceOut]


class MessageResponse(BaseModel):
    message: str
