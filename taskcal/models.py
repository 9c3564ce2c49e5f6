import logging

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

from .errors import BackendError

logger = logging.getLogger(__name__)

db = SQLAlchemy()


# --- Models ---
class TaskRow(db.Model):
    __tablename__ = 'tasks'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(500))
    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    completed = db.Column(db.Boolean, default=False, nullable=False)

    def __repr__(self):
        return f'<TaskRow {self.id} {self.user_id} {self.date} {self.title!r}>'


# --- Backend ---
class SqlTaskBackend:
    """Row CRUD over the ``tasks`` table.

    Each call is its own unit of work: it commits on success and rolls
    back and raises ``BackendError`` on failure.
    """

    def select_by_owner(self, user_id):
        try:
            return TaskRow.query.filter_by(user_id=user_id).order_by(TaskRow.id).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise BackendError(f'Could not load tasks: {exc}') from exc

    def delete_by_owner_and_date(self, user_id, date_key):
        try:
            deleted = TaskRow.query.filter_by(user_id=user_id, date=date_key).delete()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise BackendError(f'Could not clear tasks for {date_key}: {exc}') from exc
        logger.debug('Deleted %d rows for %s on %s', deleted, user_id, date_key)
        return deleted

    def insert_many(self, rows):
        if not rows:
            return
        try:
            db.session.add_all([TaskRow(**row) for row in rows])
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise BackendError(f'Could not save tasks: {exc}') from exc
        logger.debug('Inserted %d rows', len(rows))
