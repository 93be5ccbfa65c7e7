import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from ecotrack.db.session import Base


class Action(Base):
    """Signed point-change ledger entry. Append-only."""

    __tablename__ = "actions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False, index=True)
    action_type = Column(String(50), nullable=False)  # post_created, post_deleted, ...
    description = Column(Text, nullable=False, default="")
    points = Column(Integer, nullable=False, default=0)
    # No ORM relationship to Post: the ledger outlives the post it refers to
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="actions")
