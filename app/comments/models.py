from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Comment:
    """A reply on a ticket; comments are append-only."""

    id: int
    ticket_id: int
    author_id: int
    text: str
    created_at: datetime
