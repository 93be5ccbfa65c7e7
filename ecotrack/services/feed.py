import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ecotrack.config import settings
from ecotrack.core.platform import PlatformClient
from ecotrack.core.session import AuthSession
from ecotrack.models.post import Post, PostComment, PostLike
from ecotrack.schemas.post_schema import (
    AuthorSummary,
    CommentAuthor,
    CommentResponse,
    FeedPost,
    LikeResponse,
    LikeToggleResponse,
    PostDeletedResponse,
)
from ecotrack.services.points import POST_CREATED_POINTS, POST_DELETED_POINTS, record_action
from ecotrack.services.uploads import upload_media
from ecotrack.utils.file_utils import media_type_for

logger = logging.getLogger(__name__)

POST_CATEGORIES = [
    "Tree Planting",
    "Clean-Up",
    "Recycling",
    "Energy Saving",
    "Transportation",
    "Water Conservation",
    "Other",
]
OTHER_CATEGORY = "Other"
MAX_CATEGORY_LENGTH = 50


def resolve_category(category: str, custom_category: Optional[str]) -> str:
    """Pick the stored category; "Other" takes the user's free text instead."""
    category = (category or "").strip()
    if category.lower() == OTHER_CATEGORY.lower():
        custom = " ".join((custom_category or "").split())
        if not custom:
            raise HTTPException(status_code=400, detail="Please specify your category")
        if len(custom) > MAX_CATEGORY_LENGTH:
            raise HTTPException(status_code=400,
                                detail=f"Category must be at most {MAX_CATEGORY_LENGTH} characters")
        return custom
    for known in POST_CATEGORIES:
        if known.lower() == category.lower():
            return known
    raise HTTPException(status_code=400, detail=f"Unknown category: {category}")


def _comment_response(comment: PostComment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        content=comment.content,
        created_at=comment.created_at,
        author=CommentAuthor.model_validate(comment.user),
    )


def to_feed_post(post: Post, viewer_id: Optional[str]) -> FeedPost:
    likes = [LikeResponse.model_validate(like) for like in post.likes]
    return FeedPost(
        id=post.id,
        user_id=post.user_id,
        caption=post.caption,
        category=post.category,
        media_url=post.media_url or "",
        media_type=post.media_type or "image",
        points_awarded=post.points_awarded,
        created_at=post.created_at,
        author=AuthorSummary(
            username=post.user.username,
            full_name=post.user.full_name,
            profile_photo=post.user.profile_photo or None,
        ),
        likes=likes,
        comments=[_comment_response(c) for c in post.comments],
        like_count=len(likes),
        comment_count=len(post.comments),
        liked_by_me=viewer_id is not None and any(like.user_id == viewer_id for like in likes),
        is_owner=viewer_id is not None and post.user_id == viewer_id,
    )


def list_feed(db: Session, category: Optional[str] = None,
              viewer_id: Optional[str] = None) -> List[FeedPost]:
    query = (
        db.query(Post)
        .options(
            selectinload(Post.user),
            selectinload(Post.likes),
            selectinload(Post.comments).selectinload(PostComment.user),
        )
        .order_by(Post.created_at.desc())
    )
    if category and category.lower() != "all":
        query = query.filter(func.lower(Post.category) == category.strip().lower())
    return [to_feed_post(post, viewer_id) for post in query.all()]


def get_post_or_404(db: Session, post_id: str) -> Post:
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def create_post(db: Session, platform: PlatformClient, session: AuthSession, caption: str,
                category: str, custom_category: Optional[str] = None,
                media: Optional[UploadFile] = None) -> FeedPost:
    caption = (caption or "").strip()
    if not caption:
        raise HTTPException(status_code=400, detail="Caption is required")
    final_category = resolve_category(category, custom_category)
    user = session.profile

    media_url, media_type = "", "image"
    if media is not None and media.filename:
        media_url = upload_media(platform, settings.POSTS_BUCKET, user.id, media,
                                 token=session.access_token)
        media_type = media_type_for(media.content_type or "")

    post = Post(
        user_id=user.id,
        caption=caption,
        category=final_category,
        media_url=media_url,
        media_type=media_type,
        points_awarded=POST_CREATED_POINTS,
        created_at=datetime.utcnow(),
    )
    try:
        db.add(post)
        db.flush()
        record_action(db, user, "post_created", POST_CREATED_POINTS,
                      description=f"Posted about {final_category.lower()}", post_id=post.id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating post for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create post. Please try again.")
    db.refresh(post)
    return to_feed_post(post, user.id)


def toggle_like(db: Session, session: AuthSession, post_id: str) -> LikeToggleResponse:
    get_post_or_404(db, post_id)
    existing = (
        db.query(PostLike)
        .filter(PostLike.post_id == post_id, PostLike.user_id == session.user_id)
        .first()
    )
    liked = existing is None
    try:
        if existing:
            db.delete(existing)
        else:
            db.add(PostLike(post_id=post_id, user_id=session.user_id, created_at=datetime.utcnow()))
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same like first
        db.rollback()
        liked = True
    count = db.query(func.count(PostLike.id)).filter(PostLike.post_id == post_id).scalar()
    return LikeToggleResponse(post_id=post_id, liked=liked, like_count=count or 0)


def add_comment(db: Session, session: AuthSession, post_id: str, content: str) -> CommentResponse:
    content = (content or "").strip()
    if not content:
        raise HTTPException(status_code=400, detail="Comment cannot be empty")
    get_post_or_404(db, post_id)
    comment = PostComment(post_id=post_id, user_id=session.user_id, content=content,
                          created_at=datetime.utcnow())
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return _comment_response(comment)


def delete_comment(db: Session, session: AuthSession, comment_id: str) -> None:
    comment = db.query(PostComment).filter(PostComment.id == comment_id).first()
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    if comment.user_id != session.user_id:
        raise HTTPException(status_code=403, detail="You can only delete your own comments")
    db.delete(comment)
    db.commit()


def delete_post(db: Session, session: AuthSession, post_id: str) -> PostDeletedResponse:
    """Remove a post and take back its points, as one transaction."""
    post = get_post_or_404(db, post_id)
    if post.user_id != session.user_id:
        raise HTTPException(status_code=403, detail="You can only delete your own posts")
    user = session.profile
    try:
        record_action(db, user, "post_deleted", POST_DELETED_POINTS,
                      description="Post deleted", post_id=post.id)
        db.delete(post)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete post")
    return PostDeletedResponse(post_id=post_id, points_delta=POST_DELETED_POINTS, points=user.points)


def list_user_posts(db: Session, user_id: str, viewer_id: Optional[str] = None) -> List[FeedPost]:
    posts = (
        db.query(Post)
        .options(
            selectinload(Post.user),
            selectinload(Post.likes),
            selectinload(Post.comments).selectinload(PostComment.user),
        )
        .filter(Post.user_id == user_id)
        .order_by(Post.created_at.desc())
        .all()
    )
    return [to_feed_post(post, viewer_id) for post in posts]
