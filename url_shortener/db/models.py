"""
Database Models for URL Shortener Service

This module defines the SQLModel database schemas for:
- ShortURL: Stores the mapping between short codes and original URLs
- AccessRecord: Stores one row per successful redirect for analytics

Design Decisions:
- Separate analytics table (can be partitioned/archived independently)
- Unique index on short_code: the storage-level guarantee that two
  concurrent creations can never share a code
- analytics.short_code is a plain indexed column, not a foreign key;
  the relation is used for lookups only
- access_count denormalized in ShortURL; it is the authoritative click total
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlmodel import Column, Field, SQLModel

from url_shortener.core.validators import utcnow


class ShortURL(SQLModel, table=True):
    """
    Main table storing URL shortening mappings.

    Fields:
    - id: Auto-incrementing primary key
    - original_url: The normalized long URL
    - short_code: Unique, case-sensitive code (3-20 alphanumerics)
    - created_at / expires_at: Validity window (UTC)
    - is_active: Cleared the first time an expired access is observed
    - access_count / last_accessed: Updated on every successful redirect
    """
    __tablename__ = "urls"

    id: Optional[int] = Field(default=None, primary_key=True)
    original_url: str = Field(sa_column=Column(Text, nullable=False))
    short_code: str = Field(
        sa_column=Column(String(20), nullable=False, unique=True, index=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    access_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    last_accessed: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class AccessRecord(SQLModel, table=True):
    """
    One row per redirect that passed the active/expiry checks.

    Never updated or deleted.
    """
    __tablename__ = "analytics"

    id: Optional[int] = Field(default=None, primary_key=True)
    short_code: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    accessed_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    ip_address: Optional[str] = Field(default=None, sa_column=Column(String(45), nullable=True))  # IPv6 max length
    user_agent: Optional[str] = Field(default=None, sa_column=Column(String(500), nullable=True))
    referrer: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    location: str = Field(
        default="Unknown",
        sa_column=Column(String(100), nullable=False, default="Unknown")
    )
