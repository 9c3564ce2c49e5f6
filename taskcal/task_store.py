"""Per-session task snapshot, optionally synced to a persistence backend.

A synced store talks to a backend offering ``select_by_owner``,
``delete_by_owner_and_date`` and ``insert_many``; a local-only store
(``backend=None``) keeps everything in memory.

Mutations are optimistic: the snapshot changes first, then the day is
written remotely with ``replace_day`` and the full task set is reloaded
whatever the outcome.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .calendar_grid import parse_date_key
from .errors import BackendError, FetchError, ValidationError, WriteError
from .tasks import DurableId, Task, TaskId, clean_description, clean_title, new_pending_id, parse_task_id

logger = logging.getLogger(__name__)

TaskMap = Dict[str, List[Task]]


def row_to_task(row) -> Task:
    return Task(
        id=DurableId(row.id),
        title=row.title,
        description=row.description,
        completed=bool(row.completed),
        date=row.date,
    )


def task_to_row(user_id: str, task: Task) -> dict:
    row = {
        'user_id': user_id,
        'title': task.title,
        'description': task.description,
        'date': task.date,
        'completed': task.completed,
    }
    # Pending ids are left out so the backend assigns a durable one.
    if isinstance(task.id, DurableId):
        row['id'] = task.id.value
    return row


def bucket_by_date(tasks: Iterable[Task]) -> TaskMap:
    buckets: TaskMap = {}
    for task in tasks:
        buckets.setdefault(task.date, []).append(task)
    return buckets


class TaskStore:
    def __init__(self, backend=None):
        self.backend = backend
        self.tasks: TaskMap = {}

    @property
    def synced(self) -> bool:
        return self.backend is not None

    def day(self, date_key: str) -> List[Task]:
        return list(self.tasks.get(date_key, []))

    def _set_day(self, date_key: str, tasks: List[Task]) -> None:
        # An emptied day is dropped so it looks exactly like a day never used.
        if tasks:
            self.tasks[date_key] = tasks
        else:
            self.tasks.pop(date_key, None)

    # --- Remote contract ---
    def load_all(self, user_id: str) -> TaskMap:
        """Rehydrate the snapshot with every task the user owns."""
        if not self.synced:
            return self.tasks

        try:
            rows = self.backend.select_by_owner(user_id)
        except BackendError as exc:
            logger.warning('Loading tasks for %s failed', user_id, exc_info=True)
            raise FetchError('Could not load your tasks.') from exc

        self.tasks = bucket_by_date(row_to_task(row) for row in rows)
        logger.debug('Loaded %d days for %s', len(self.tasks), user_id)
        return self.tasks

    def _checked_day(self, date_key: str, tasks: Iterable[Task]) -> List[Task]:
        """Stamp ``tasks`` with ``date_key`` and vet their ids before any write.

        Repeated ids are rejected. A durable id only survives if it already
        belongs to this day in the snapshot; any other one (a row from
        another day or another user) becomes a fresh pending id.
        """
        known = {t.id for t in self.tasks.get(date_key, []) if isinstance(t.id, DurableId)}
        seen = set()
        checked = []
        for task in tasks:
            if task.id in seen:
                raise ValidationError(f'Task {task.id} appears twice on {date_key}')
            seen.add(task.id)
            if isinstance(task.id, DurableId) and task.id not in known:
                task = replace(task, id=new_pending_id())
            if task.date != date_key:
                task = replace(task, date=date_key)
            checked.append(task)
        return checked

    def replace_day(self, user_id: str, date_key: str, tasks: Iterable[Task]) -> None:
        """Make ``tasks`` the complete list for ``date_key``.

        Delete and insert are two separate writes; if the insert fails the
        day can end up empty remotely. The snapshot is reloaded afterwards
        in both cases.
        """
        parse_date_key(date_key)
        tasks = self._checked_day(date_key, tasks)
        previous = self.day(date_key)
        self._set_day(date_key, tasks)

        if not self.synced:
            return

        error = None
        try:
            self.backend.delete_by_owner_and_date(user_id, date_key)
            self.backend.insert_many([task_to_row(user_id, t) for t in tasks])
        except BackendError as exc:
            logger.warning('Replacing %s for %s failed', date_key, user_id, exc_info=True)
            error = exc
        else:
            logger.info('Saved %d tasks for %s on %s', len(tasks), user_id, date_key)

        try:
            self.load_all(user_id)
        except FetchError:
            if error is None:
                raise
            # Neither write nor reload worked: drop the optimistic edit.
            logger.warning('Resync after failed save of %s for %s failed', date_key, user_id)
            self._set_day(date_key, previous)

        if error is not None:
            raise WriteError(f'Could not save tasks for {date_key}.') from error

    # --- Day edits ---
    def _find(self, date_key: str, task_id) -> int:
        task_id = parse_task_id(task_id)
        for index, task in enumerate(self.tasks.get(date_key, [])):
            if task.id == task_id:
                return index
        raise KeyError(f'{task_id} not found on {date_key}')

    def _commit_day(self, user_id: str, date_key: str, tasks: List[Task]) -> None:
        if self.synced:
            self.replace_day(user_id, date_key, tasks)
        else:
            self._set_day(date_key, tasks)

    def add(self, user_id: str, date_key: str, title: str, description: Optional[str] = None) -> Task:
        parse_date_key(date_key)
        task = Task(
            id=new_pending_id(),
            title=clean_title(title),
            description=clean_description(description),
            date=date_key,
        )
        self._commit_day(user_id, date_key, self.day(date_key) + [task])
        return task

    def edit(self, user_id: str, date_key: str, task_id: TaskId, title: str,
             description: Optional[str] = None) -> Task:
        tasks = self.day(date_key)
        index = self._find(date_key, task_id)
        tasks[index] = replace(tasks[index], title=clean_title(title),
                               description=clean_description(description))
        updated = tasks[index]
        self._commit_day(user_id, date_key, tasks)
        return updated

    def toggle_complete(self, user_id: str, date_key: str, task_id: TaskId) -> Task:
        tasks = self.day(date_key)
        index = self._find(date_key, task_id)
        tasks[index] = tasks[index].toggled()
        updated = tasks[index]
        self._commit_day(user_id, date_key, tasks)
        return updated

    def delete(self, user_id: str, date_key: str, task_id: TaskId) -> None:
        tasks = self.day(date_key)
        del tasks[self._find(date_key, task_id)]
        self._commit_day(user_id, date_key, tasks)


class StoreRegistry:
    """Local-only stores, one per browser session; nothing is shared between them.

    Sessions idle for longer than ``idle_seconds`` are dropped, and at most
    ``max_sessions`` are kept, evicting the least recently used.
    """

    def __init__(self, max_sessions: int = 500, idle_seconds: float = 2 * 60 * 60, clock=time.monotonic):
        self.max_sessions = max_sessions
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._stores: OrderedDict = OrderedDict()  # token -> (TaskStore, last used)
        self._lock = threading.Lock()

    def _evict_idle(self, now: float) -> None:
        cutoff = now - self.idle_seconds
        while self._stores:
            token, (_, last_used) = next(iter(self._stores.items()))
            if last_used > cutoff:
                break
            del self._stores[token]
            logger.debug('Dropped idle session store %s', token)

    def get(self, session_token: str) -> TaskStore:
        with self._lock:
            now = self.clock()
            self._evict_idle(now)
            entry = self._stores.pop(session_token, None)
            store = entry[0] if entry is not None else TaskStore()
            self._stores[session_token] = (store, now)
            while len(self._stores) > self.max_sessions:
                self._stores.popitem(last=False)
            return store

    def discard(self, session_token: str) -> None:
        with self._lock:
            self._stores.pop(session_token, None)

    def __len__(self):
        return len(self._stores)
