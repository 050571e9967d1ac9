"""
RateLimitBucket Entity

Fixed-window attempt counter shared by every API process.
"""

from datetime import datetime

from sqlmodel import Column, DateTime, Field, Index, SQLModel


class RateLimitBucket(SQLModel, table=True):
    """
    One row per (scope, subject, window).

    key embeds the window index, so a new window starts a new row and
    stale rows are left for the retention job.
    """

    __tablename__ = "rate_limit_buckets"

    key: str = Field(primary_key=True, max_length=255)
    count: int = Field(default=0)
    window_start: datetime = Field(sa_column=Column(DateTime))
    window_end: datetime = Field(sa_column=Column(DateTime))

    __table_args__ = (Index("idx_rate_limit_window_end", "window_end"),)
