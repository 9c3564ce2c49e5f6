"""Task records and their identifiers.

A task id is either a ``PendingId`` (made in the browser session, never
stored) or a ``DurableId`` (the backend's integer row id). Inserts drop
pending ids so the backend assigns a durable one, and keep durable ids so
a task survives a day being replaced.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from typing import Optional, Union

from .errors import ValidationError

PENDING_PREFIX = 'tmp-'


@dataclass(frozen=True)
class PendingId:
    token: str

    def __str__(self) -> str:
        return f'{PENDING_PREFIX}{self.token}'


@dataclass(frozen=True)
class DurableId:
    value: int

    def __str__(self) -> str:
        return str(self.value)


TaskId = Union[PendingId, DurableId]


def new_pending_id() -> PendingId:
    return PendingId(uuid.uuid4().hex)


def parse_task_id(raw) -> TaskId:
    """Map the wire form of an id back to its tagged form.

    ``"tmp-<token>"`` is pending, a decimal integer is durable; anything
    else is rejected rather than treated as "no id".
    """
    if isinstance(raw, (PendingId, DurableId)):
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool):
        return DurableId(raw)
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.startswith(PENDING_PREFIX) and len(raw) > len(PENDING_PREFIX):
            return PendingId(raw[len(PENDING_PREFIX):])
        if raw.isdigit():
            return DurableId(int(raw))
    raise ValidationError(f'Invalid task id: {raw!r}')


def clean_title(title) -> str:
    text = (title or '').strip()
    if not text:
        raise ValidationError('Task text cannot be empty')
    return text


def clean_description(description) -> Optional[str]:
    text = (description or '').strip()
    return text or None


@dataclass(frozen=True)
class Task:
    id: TaskId
    title: str
    date: str
    completed: bool = False
    description: Optional[str] = None

    def toggled(self) -> 'Task':
        return replace(self, completed=not self.completed)

    def to_dict(self) -> dict:
        return {
            'id': str(self.id),
            'title': self.title,
            'description': self.description,
            'completed': self.completed,
            'date': self.date,
        }

    @classmethod
    def from_dict(cls, data: dict, date_key: str) -> 'Task':
        """Build a task from a JSON payload, stamping it with ``date_key``."""
        raw_id = data.get('id')
        task_id = new_pending_id() if raw_id in (None, '') else parse_task_id(raw_id)
        return cls(
            id=task_id,
            title=clean_title(data.get('title')),
            description=clean_description(data.get('description')),
            completed=bool(data.get('completed', False)),
            date=date_key,
        )
