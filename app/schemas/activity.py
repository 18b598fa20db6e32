from datetime import datetime
from typing import Optional
import uuid

from pydantic import BaseModel


class ActivityEntry(BaseModel):
    """One line of the restaurant's activity feed."""
    id: uuid.UUID
    type: str  # order | payment | reservation | inventory
    title: str
    description: str
    actor: Optional[str] = None
    timestamp: datetime
