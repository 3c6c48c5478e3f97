"""
Pod Log Models - Timestamped log lines and time-based pages.
"""

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class LogEntry(BaseModel):
    """A single log line split at the kubelet timestamp."""
    timestamp: datetime = Field(..., description="Line timestamp (UTC)")
    content: str = Field("", description="Log line without its timestamp")


class LogPage(BaseModel):
    """
    A page of log entries.

    When `has_more` is true, `next_start_time` is the timestamp of the first
    entry not included and can be passed back as the next `start_time`.
    """
    logs: List[LogEntry] = Field(default_factory=list, description="Entries, oldest first")
    next_start_time: Optional[datetime] = Field(None, description="Where the next page starts")
    has_more: bool = Field(False, description="Whether more entries follow this page")
