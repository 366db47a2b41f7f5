# blverse/models/engagement.py
"""
Engagement targets and the (user, target) edges that back their counters.

The ``*_count`` columns on targets are caches. They are always rewritten
from a fresh count of edge rows, never incremented in place. Each edge
table carries a unique constraint on (target, user) so concurrent toggles
cannot create a second edge.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
import ulid

from ..database import Base


def _ulid() -> str:
    return str(ulid.ULID())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# Targets


class CommunityPost(Base):
    __tablename__ = "community_posts"

    id = Column(String(26), primary_key=True, default=_ulid)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False, default="")
    likes_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class PostComment(Base):
    __tablename__ = "post_comments"

    id = Column(String(26), primary_key=True, default=_ulid)
    post_id = Column(String(26), ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False, default="")
    likes_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class Story(Base):
    __tablename__ = "stories"

    id = Column(String(26), primary_key=True, default=_ulid)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False, default="")
    likes_count = Column(Integer, nullable=False, default=0)
    favorites_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class Work(Base):
    __tablename__ = "works"

    id = Column(String(26), primary_key=True, default=_ulid)
    author_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False, default="")
    kudos_count = Column(Integer, nullable=False, default=0)
    bookmarks_count = Column(Integer, nullable=False, default=0)
    hits_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    @property
    def user_id(self) -> str:
        return self.author_id


class WorkComment(Base):
    __tablename__ = "work_comments"

    id = Column(String(26), primary_key=True, default=_ulid)
    work_id = Column(String(26), ForeignKey("works.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    chapter_number = Column(Integer, nullable=False, default=1)
    content = Column(Text, nullable=False, default="")
    likes_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


# Edges


class PostLike(Base):
    __tablename__ = "post_likes"

    id = Column(String(26), primary_key=True, default=_ulid)
    target_id = Column(String(26), ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (UniqueConstraint("target_id", "user_id", name="uq_post_likes_target_user"),)


class PostCommentLike(Base):
    __tablename__ = "post_comment_likes"

    id = Column(String(26), primary_key=True, default=_ulid)
    target_id = Column(String(26), ForeignKey("post_comments.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("target_id", "user_id", name="uq_post_comment_likes_target_user"),
    )


class StoryLike(Base):
    __tablename__ = "story_likes"

    id = Column(String(26), primary_key=True, default=_ulid)
    target_id = Column(String(26), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (UniqueConstraint("target_id", "user_id", name="uq_story_likes_target_user"),)


class StoryFavorite(Base):
    __tablename__ = "story_favorites"

    id = Column(String(26), primary_key=True, default=_ulid)
    target_id = Column(String(26), ForeignKey("stories.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("target_id", "user_id", name="uq_story_favorites_target_user"),
    )


class WorkKudos(Base):
    __tablename__ = "work_kudos"

    id = Column(String(26), primary_key=True, default=_ulid)
    target_id = Column(String(26), ForeignKey("works.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (UniqueConstraint("target_id", "user_id", name="uq_work_kudos_target_user"),)


class WorkBookmark(Base):
    __tablename__ = "work_bookmarks"

    id = Column(String(26), primary_key=True, default=_ulid)
    target_id = Column(String(26), ForeignKey("works.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("target_id", "user_id", name="uq_work_bookmarks_target_user"),
    )


class WorkCommentLike(Base):
    __tablename__ = "work_comment_likes"

    id = Column(String(26), primary_key=True, default=_ulid)
    target_id = Column(String(26), ForeignKey("work_comments.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("target_id", "user_id", name="uq_work_comment_likes_target_user"),
    )


class WorkHit(Base):
    """
    A counted visit to a work.

    A hit is keyed either by a logged-in user or by a client-generated
    anonymous id. When an anonymous visitor later signs in, the anonymous
    row is promoted to the user instead of adding a second hit. Unique
    constraints treat NULLs as distinct, so each column only constrains
    rows where it is set.
    """

    __tablename__ = "work_hits"

    id = Column(String(26), primary_key=True, default=_ulid)
    work_id = Column(String(26), ForeignKey("works.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    anon_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("work_id", "user_id", name="uq_work_hits_work_user"),
        UniqueConstraint("work_id", "anon_id", name="uq_work_hits_work_anon"),
    )
