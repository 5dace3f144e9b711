"""
todos/models.py -- Domain dataclass for todo items.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Todo:
    """A todo item. deleted_at is None while visible; once set it is never cleared."""

    id: str
    title: str
    owner_user_id: str
    completed: bool = False
    created_at: str = ""  # ISO 8601, set by store on insert
    deleted_at: str | None = None
