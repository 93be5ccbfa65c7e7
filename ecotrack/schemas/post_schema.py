from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional


class AuthorSummary(BaseModel):
    username: str
    full_name: str
    profile_photo: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CommentAuthor(BaseModel):
    username: str
    full_name: str

    model_config = ConfigDict(from_attributes=True)


class LikeResponse(BaseModel):
    id: str
    user_id: str

    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    content: str = Field(..., max_length=1000)


class CommentResponse(BaseModel):
    id: str
    post_id: str
    user_id: str
    content: str
    created_at: datetime
    author: CommentAuthor

    model_config = ConfigDict(from_attributes=True)


class PostBase(BaseModel):
    caption: str
    category: str
    media_url: str = ""
    media_type: str = "image"


class PostResponse(PostBase):
    id: str
    user_id: str
    points_awarded: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FeedPost(PostResponse):
    author: AuthorSummary
    likes: List[LikeResponse] = []
    comments: List[CommentResponse] = []
    like_count: int = 0
    comment_count: int = 0
    liked_by_me: bool = False
    is_owner: bool = False


class LikeToggleResponse(BaseModel):
    post_id: str
    liked: bool
    like_count: int


class PostDeletedResponse(BaseModel):
    post_id: str
    points_delta: int
    points: int
