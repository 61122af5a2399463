"""Pydantic schemas for shelters, animals, users and adoption applications."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Photo(BaseModel):
    url: str = Field(..., description="Host-relative or absolute photo URL.")


class ShelterBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: str | None = Field(default=None, max_length=300)
    region: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    email: EmailStr | None = None
    description: str | None = Field(default=None, max_length=2000)


class ShelterCreate(ShelterBase):
    admin_id: int | None = Field(default=None, description="Owning shelter admin; forced to the caller for shelter admins.")
    photo_urls: list[str] = Field(default_factory=list)


class ShelterUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    address: str | None = Field(default=None, max_length=300)
    region: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    email: EmailStr | None = None
    description: str | None = Field(default=None, max_length=2000)
    photo_urls: list[str] = Field(default_factory=list)


class ShelterResponse(ShelterBase):
    model_config = ConfigDict(extra="ignore")

    id: int
    admin_id: int | None = None
    rating: float = Field(0.0, description="Mean vote, two decimals; 0 without votes.")
    total_ratings: int = 0
    photos: list[Photo] = Field(default_factory=list)


AnimalSize = Literal["small", "medium", "large"]


class AnimalBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=0, le=50)
    type: str = Field(..., min_length=1, max_length=50, description="Species, e.g. 'cat' or 'dog'.")
    shelter_id: int
    health: str | None = Field(default=None, max_length=30)
    gender: Literal["male", "female"] | None = None
    color: str | None = Field(default=None, max_length=50)
    weight: float | None = Field(default=None, ge=0)
    personality: str | None = Field(default=None, max_length=100)
    animal_size: AnimalSize | None = None
    history: str | None = Field(default=None, max_length=1000)


class AnimalCreate(AnimalBase):
    photo_urls: list[str] = Field(default_factory=list)


class AnimalUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    age: int | None = Field(default=None, ge=0, le=50)
    type: str | None = Field(default=None, min_length=1, max_length=50)
    shelter_id: int | None = None
    health: str | None = Field(default=None, max_length=30)
    gender: Literal["male", "female"] | None = None
    color: str | None = Field(default=None, max_length=50)
    weight: float | None = Field(default=None, ge=0)
    personality: str | None = Field(default=None, max_length=100)
    animal_size: AnimalSize | None = None
    history: str | None = Field(default=None, max_length=1000)
    photo_urls: list[str] = Field(default_factory=list)


class AnimalResponse(AnimalBase):
    model_config = ConfigDict(extra="ignore")

    id: int
    photos: list[Photo] = Field(default_factory=list)


class AnimalSearchParams(BaseModel):
    """Query filters for animal search; unset filters match everything."""

    type: str | None = None
    gender: Literal["male", "female"] | None = None
    animal_size: AnimalSize | None = None
    health: str | None = None
    shelter_id: int | None = None
    min_age: int | None = Field(default=None, ge=0)
    max_age: int | None = Field(default=None, ge=0)


UserRole = Literal["user", "shelter_admin", "admin"]


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    bio: str | None = Field(default=None, max_length=1000)
    role: UserRole = "user"
    photo_url: str | None = None


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=30)
    bio: str | None = Field(default=None, max_length=1000)
    photo_url: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    bio: str | None = None
    role: UserRole = "user"
    photos: list[Photo] = Field(default_factory=list)


ApplicationStatus = Literal["pending", "approved", "rejected", "cancelled"]


class ApplicationCreate(BaseModel):
    user_id: int
    shelter_id: int
    animal_id: int
    description: str = Field(..., min_length=1, max_length=5000)


class ApplicationUpdate(BaseModel):
    description: str | None = Field(default=None, min_length=1, max_length=5000)
    status: ApplicationStatus | None = None
    is_active: bool | None = None


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    user_id: int
    shelter_id: int
    animal_id: int
    description: str
    status: ApplicationStatus = "pending"
    is_active: bool = True


class StatusCount(BaseModel):
    status: ApplicationStatus
    count: int
