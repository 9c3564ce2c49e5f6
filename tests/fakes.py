# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace

from taskcal.errors import BackendError


@dataclass
class FakeBackend:
    """
    In-memory stand-in for the row store.

    - Assigns integer ids the way the database would
    - Each operation can be made to fail via the ``fail_*`` flags
    - Records calls for assertions
    """

    rows: list = field(default_factory=list)
    next_id: int = 1
    fail_select: bool = False
    fail_delete: bool = False
    fail_insert: bool = False
    calls: list = field(default_factory=list)

    def select_by_owner(self, user_id):
        self.calls.append(('select', user_id))
        if self.fail_select:
            raise BackendError('select failed')
        return sorted((r for r in self.rows if r.user_id == user_id), key=lambda r: r.id)

    def delete_by_owner_and_date(self, user_id, date_key):
        self.calls.append(('delete', user_id, date_key))
        if self.fail_delete:
            raise BackendError('delete failed')
        before = len(self.rows)
        self.rows = [r for r in self.rows if not (r.user_id == user_id and r.date == date_key)]
        return before - len(self.rows)

    def insert_many(self, rows):
        self.calls.append(('insert', len(rows)))
        if self.fail_insert:
            raise BackendError('insert failed')
        for row in rows:
            row = dict(row)
            if 'id' not in row:
                row['id'] = self.next_id
            self.next_id = max(self.next_id, row['id']) + 1
            row.setdefault('description', None)
            self.rows.append(SimpleNamespace(**row))

    def seed(self, user_id, date_key, title, completed=False, description=None):
        self.insert_many([{
            'user_id': user_id,
            'date': date_key,
            'title': title,
            'completed': completed,
            'description': description,
        }])
        return self.rows[-1]
