"""Domain types for outbound notifications."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AlertMessage(BaseModel):
    """One batched push notification, ready for a channel."""

    title: str
    body: str
    priority: str = "default"
    tags: list[str] = Field(default_factory=list)
    alert_types: list[str] = Field(default_factory=list)
