from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""

    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Role(Base):
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    permissions = Column(JSON, default=list, nullable=False)

    users = relationship("User", back_populates="role")


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255))
    is_admin = Column(Integer, default=0, nullable=False)
    is_active = Column(Integer, default=1, nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=True)
    created = Column(DateTime(timezone=True), default=utcnow)

    role = relationship("Role", back_populates="users")


class RecordMixin:
    """Columns shared by every exhibit-scoped record."""

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, index=True)
    is_published = Column(Integer, default=0, nullable=False)
    is_locked = Column(Integer, default=0, nullable=False)
    locked_by_user = Column(Integer, nullable=True)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    is_deleted = Column(Integer, default=0, nullable=False)
    owner = Column(Integer, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    created = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    created_by = Column(String(255), nullable=True)
    updated_by = Column(String(255), nullable=True)


class Exhibit(RecordMixin, Base):
    __tablename__ = "tbl_exhibits"
    type = Column(String(50), default="exhibit", nullable=False)
    title = Column(Text, nullable=False)
    subtitle = Column(Text)
    banner_template = Column(String(100))
    about_the_curators = Column(Text)
    alert_text = Column(Text)
    hero_image = Column(String(255), default="")
    thumbnail = Column(String(255), default="")
    description = Column(Text)
    page_layout = Column(String(100))
    exhibit_template = Column(String(100))
    styles = Column(Text, default="{}")
    order = Column(Integer, default=0)
    is_featured = Column(Integer, default=0, nullable=False)
    is_student_curated = Column(Integer, default=0, nullable=False)
    is_preview = Column(Integer, default=0, nullable=False)


class Heading(RecordMixin, Base):
    __tablename__ = "tbl_heading_items"
    is_member_of_exhibit = Column(String(36), nullable=False, index=True)
    type = Column(String(50), default="heading", nullable=False)
    text = Column(Text)
    styles = Column(Text, default="{}")
    order = Column(Integer, default=0)
    is_visible = Column(Integer, default=1, nullable=False)
    is_anchor = Column(Integer, default=1, nullable=False)


class Item(RecordMixin, Base):
    __tablename__ = "tbl_standard_items"
    is_member_of_exhibit = Column(String(36), nullable=False, index=True)
    type = Column(String(50), default="item", nullable=False)
    item_type = Column(String(50), default="text")
    title = Column(Text)
    caption = Column(Text)
    description = Column(Text)
    text = Column(Text)
    wrap_text = Column(Integer, default=1)
    media = Column(String(255), default="")
    thumbnail = Column(String(255), default="")
    mime_type = Column(String(100))
    layout = Column(String(100))
    media_width = Column(Integer)
    alt_text = Column(Text)
    is_alt_text_decorative = Column(Integer, default=0)
    pdf_open_to_page = Column(Integer, default=1)
    item_subjects = Column(Text)
    styles = Column(Text, default="{}")
    columns = Column(Integer)
    order = Column(Integer, default=0)
    is_repo_item = Column(Integer, default=0)
    is_kaltura_item = Column(Integer, default=0)
    is_embedded = Column(Integer, default=0)


class Grid(RecordMixin, Base):
    __tablename__ = "tbl_grids"
    is_member_of_exhibit = Column(String(36), nullable=False, index=True)
    type = Column(String(50), default="grid", nullable=False)
    title = Column(Text)
    text = Column(Text)
    styles = Column(Text, default="{}")
    columns = Column(Integer, default=4)
    order = Column(Integer, default=0)


class GridItem(RecordMixin, Base):
    __tablename__ = "tbl_grid_items"
    is_member_of_exhibit = Column(String(36), nullable=False, index=True)
    is_member_of_grid = Column(String(36), nullable=False, index=True)
    type = Column(String(50), default="grid_item", nullable=False)
    item_type = Column(String(50), default="text")
    title = Column(Text)
    caption = Column(Text)
    description = Column(Text)
    text = Column(Text)
    media = Column(String(255), default="")
    thumbnail = Column(String(255), default="")
    mime_type = Column(String(100))
    layout = Column(String(100))
    date = Column(String(50))
    styles = Column(Text, default="{}")
    order = Column(Integer, default=0)


class Timeline(RecordMixin, Base):
    __tablename__ = "tbl_timelines"
    is_member_of_exhibit = Column(String(36), nullable=False, index=True)
    type = Column(String(50), default="vertical_timeline", nullable=False)
    title = Column(Text)
    text = Column(Text)
    styles = Column(Text, default="{}")
    order = Column(Integer, default=0)


class TimelineItem(RecordMixin, Base):
    __tablename__ = "tbl_timeline_items"
    is_member_of_exhibit = Column(String(36), nullable=False, index=True)
    is_member_of_timeline = Column(String(36), nullable=False, index=True)
    type = Column(String(50), default="timeline_item", nullable=False)
    item_type = Column(String(50), default="text")
    title = Column(Text)
    date = Column(String(50))
    description = Column(Text)
    text = Column(Text)
    media = Column(String(255), default="")
    thumbnail = Column(String(255), default="")
    styles = Column(Text, default="{}")
    order = Column(Integer, default=0)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    action = Column(String(100), nullable=False)
    target_type = Column(String(50))
    target_id = Column(String(36))
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_logs_target", "target_type", "target_id"),)
