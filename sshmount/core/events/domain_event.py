"""
Base class for all domain events.
"""

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """
    Represents an event that occurred in the domain.

    Attributes:
        event_id: A unique identifier for the event instance.
        timestamp: The UTC time when the event was created.
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_payload(self) -> Dict[str, Any]:
        """Event-specific fields as JSON-compatible values (envelope fields excluded)."""
        payload: Dict[str, Any] = {}
        for f in fields(self):
            if f.name in ("event_id", "timestamp"):
                continue
            value = getattr(self, f.name)
            if isinstance(value, BaseModel):
                value = value.model_dump(mode="json", by_alias=True)
            elif isinstance(value, Enum):
                value = value.value
            payload[f.name] = value
        return payload
