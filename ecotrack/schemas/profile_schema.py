from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class ProfileBase(BaseModel):
    username: str
    full_name: str = ""
    bio: str = ""
    profile_photo: str = ""


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30)
    full_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    profile_photo: Optional[str] = None


class ProfileResponse(ProfileBase):
    id: str
    email: str
    points: int
    level: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PublicProfileResponse(ProfileBase):
    id: str
    points: int
    level: int
    post_count: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AccountDeletedResponse(BaseModel):
    profile_deleted: bool
    auth_deleted: bool
    message: str
