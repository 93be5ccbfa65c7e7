from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from ecotrack.core.platform import PlatformClient, get_platform
from ecotrack.core.session import AuthSession, get_auth_session, get_optional_session, get_profile_session
from ecotrack.db.session import get_db
from ecotrack.schemas.post_schema import (
    CommentCreate,
    CommentResponse,
    FeedPost,
    LikeToggleResponse,
    PostDeletedResponse,
)
from ecotrack.services import feed

router = APIRouter(prefix="/posts", tags=["posts"])

# Get the feed

@router.get("/", response_model=List[FeedPost])
def get_feed(category: Optional[str] = Query(None, description="Category name, or 'all'"),
             db: Session = Depends(get_db),
             session: Optional[AuthSession] = Depends(get_optional_session)):
    viewer_id = session.user_id if session else None
    return feed.list_feed(db, category=category, viewer_id=viewer_id)


@router.get("/categories", response_model=List[str])
def get_categories():
    return feed.POST_CATEGORIES

# Create a new post

@router.post("/", response_model=FeedPost, status_code=status.HTTP_201_CREATED)
def create_post(caption: str = Form(...),
                category: str = Form(...),
                custom_category: Optional[str] = Form(None),
                media: Optional[UploadFile] = File(None),
                session: AuthSession = Depends(get_profile_session),
                db: Session = Depends(get_db),
                platform: PlatformClient = Depends(get_platform)):
    return feed.create_post(db, platform, session, caption, category,
                            custom_category=custom_category, media=media)

# Delete (takes the post's points back)

@router.delete("/{post_id}", response_model=PostDeletedResponse)
def delete_post(post_id: str, session: AuthSession = Depends(get_profile_session),
                db: Session = Depends(get_db)):
    return feed.delete_post(db, session, post_id)

# Like / unlike

@router.post("/{post_id}/like", response_model=LikeToggleResponse)
def toggle_like(post_id: str, session: AuthSession = Depends(get_profile_session),
                db: Session = Depends(get_db)):
    return feed.toggle_like(db, session, post_id)

# Comments

@router.post("/{post_id}/comments", response_model=CommentResponse,
             status_code=status.HTTP_201_CREATED)
def add_comment(post_id: str, body: CommentCreate,
                session: AuthSession = Depends(get_profile_session),
                db: Session = Depends(get_db)):
    return feed.add_comment(db, session, post_id, body.content)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(comment_id: str, session: AuthSession = Depends(get_auth_session),
                   db: Session = Depends(get_db)):
    feed.delete_comment(db, session, comment_id)
