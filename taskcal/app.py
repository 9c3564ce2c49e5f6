import logging
import uuid
from datetime import datetime, timedelta
from functools import wraps

from flask import (
    Blueprint, Flask, abort, current_app, flash, jsonify, redirect,
    render_template, request, session, url_for
)

from .calendar_grid import (
    date_key, month_grid, month_label, next_month, parse_date_key,
    parse_month, prev_month, weekday_labels
)
from .config import load_settings
from .errors import FetchError, TaskcalError, ValidationError, WriteError
from .models import SqlTaskBackend, db
from .stats import day_progress, day_state, progress_message, summarize
from .task_store import StoreRegistry, TaskStore
from .tasks import Task

logger = logging.getLogger(__name__)

bp = Blueprint('calendar', __name__)

THEMES = ('light', 'dark')
THEME_COOKIE = 'theme'
THEME_MAX_AGE = int(timedelta(days=365).total_seconds())
MISSED_DAYS_SHOWN = 5
DOTS_SHOWN = 3


def create_app(settings=None, overrides=None):
    settings = settings or load_settings()

    app = Flask(__name__)

    # --- Configuration ---
    app.config.update(settings.flask_config())
    app.config['CLOCK'] = datetime.now
    if overrides:
        app.config.update(overrides)

    db.init_app(app)

    synced = app.config['STORE_MODE'] == 'synced'
    if synced:
        with app.app_context():
            db.create_all()
    else:
        app.extensions['taskcal.stores'] = StoreRegistry(app.config['LOCAL_MAX_SESSIONS'],
                                                         app.config['LOCAL_IDLE_SECONDS'])

    app.register_blueprint(bp)
    logger.info('taskcal ready (store mode: %s)', app.config['STORE_MODE'])
    return app


# --- Request context ---
def _now():
    return current_app.config['CLOCK']()


def _user_id():
    return session.get('user_id')


def _store():
    """A fresh synced store per request, or this session's in-memory one."""
    if current_app.config['STORE_MODE'] == 'synced':
        return TaskStore(SqlTaskBackend())
    token = session.get('sid')
    if token is None:
        token = session['sid'] = uuid.uuid4().hex
    return current_app.extensions['taskcal.stores'].get(token)


def _loaded_store():
    store = _store()
    store.load_all(_user_id())
    return store


def _end_session():
    token = session.get('sid')
    if token is not None and 'taskcal.stores' in current_app.extensions:
        current_app.extensions['taskcal.stores'].discard(token)
    session.clear()


def _theme():
    theme = request.cookies.get(THEME_COOKIE)
    return theme if theme in THEMES else 'light'


@bp.app_context_processor
def inject_preferences():
    return {'theme': _theme(), 'user_id': _user_id()}


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if _user_id() is None:
            if request.path.startswith('/api/'):
                return _json_error('Please log in first.', 401)
            flash('Please log in first.', 'error')
            return redirect(url_for('calendar.index'))
        return view(*args, **kwargs)
    return wrapped


def _json_error(message, status_code):
    return jsonify({'status': 'error', 'message': message}), status_code


def _back_to_day(key):
    try:
        parse_date_key(key)
    except ValidationError:
        return redirect(url_for('calendar.index'))
    return redirect(url_for('calendar.index', date=key))


def _tasks_json(tasks):
    return {key: [t.to_dict() for t in day] for key, day in sorted(tasks.items())}


# --- Routes ---
@bp.route('/')
def index():
    # 1. Determine the month and the day being edited
    now = _now()
    today = now.date()
    month = today.replace(day=1)
    selected = None

    try:
        if request.args.get('date'):
            selected = parse_date_key(request.args['date'])
            month = selected.replace(day=1)
        if request.args.get('month'):
            month = parse_month(request.args['month'])
    except ValidationError as exc:
        flash(str(exc), 'error')

    # 2. Load the user's tasks (the last good snapshot stays on failure)
    tasks = {}
    user_id = _user_id()
    if user_id:
        store = _store()
        try:
            tasks = store.load_all(user_id)
        except FetchError as exc:
            flash(str(exc), 'error')
            tasks = store.tasks

    # 3. Build the grid
    cells = []
    for d in month_grid(month):
        key = date_key(d)
        day_tasks = tasks.get(key, [])
        cells.append({
            'date': d,
            'key': key,
            'state': day_state(tasks, key, now).value,
            'in_month': d.month == month.month,
            'is_today': d == today,
            'dots': min(len(day_tasks), DOTS_SHOWN),
            'extra': max(len(day_tasks) - DOTS_SHOWN, 0),
        })

    summary = summarize(tasks, now)

    editor = None
    if selected is not None and user_id:
        key = date_key(selected)
        day_tasks = tasks.get(key, [])
        editor = {
            'date': selected,
            'key': key,
            'tasks': day_tasks,
            'completed': sum(1 for t in day_tasks if t.completed),
            'progress': day_progress(tasks, key),
        }

    return render_template('index.html',
                           cells=cells,
                           weekdays=weekday_labels(),
                           month=month,
                           month_title=month_label(month),
                           prev_month=prev_month(month).strftime('%Y-%m'),
                           next_month=next_month(month).strftime('%Y-%m'),
                           summary=summary,
                           progress_message=progress_message(summary.today_progress),
                           missed_shown=[parse_date_key(k) for k in summary.missed_days[:MISSED_DAYS_SHOWN]],
                           missed_more=max(len(summary.missed_days) - MISSED_DAYS_SHOWN, 0),
                           editor=editor)


@bp.route('/login', methods=['POST'])
def login():
    user_id = request.form.get('user_id', '').strip()
    if not user_id:
        flash('Enter a user name to continue.', 'error')
        return redirect(url_for('calendar.index'))

    # A new sign-in never inherits the previous user's session store.
    _end_session()
    session['user_id'] = user_id
    logger.info('Session started for %s', user_id)
    return redirect(url_for('calendar.index'))


@bp.route('/logout', methods=['POST'])
def logout():
    _end_session()
    return redirect(url_for('calendar.index'))


@bp.route('/theme', methods=['POST'])
def toggle_theme():
    theme = 'light' if _theme() == 'dark' else 'dark'
    response = redirect(request.referrer or url_for('calendar.index'))
    response.set_cookie(THEME_COOKIE, theme, max_age=THEME_MAX_AGE, samesite='Lax')
    return response


@bp.route('/days/<day>/tasks', methods=['POST'])
@login_required
def add_task(day):
    try:
        _loaded_store().add(_user_id(), day, request.form.get('title'), request.form.get('description'))
    except TaskcalError as exc:
        flash(str(exc), 'error')
    return _back_to_day(day)


@bp.route('/days/<day>/tasks/<task_id>/edit', methods=['POST'])
@login_required
def edit_task(day, task_id):
    try:
        _loaded_store().edit(_user_id(), day, task_id,
                      request.form.get('title'), request.form.get('description'))
    except KeyError:
        abort(404)
    except TaskcalError as exc:
        flash(str(exc), 'error')
    return _back_to_day(day)


@bp.route('/days/<day>/tasks/<task_id>/toggle', methods=['POST'])
@login_required
def toggle_task(day, task_id):
    try:
        _loaded_store().toggle_complete(_user_id(), day, task_id)
    except KeyError:
        abort(404)
    except TaskcalError as exc:
        flash(str(exc), 'error')
    return _back_to_day(day)


@bp.route('/days/<day>/tasks/<task_id>/delete', methods=['POST'])
@login_required
def delete_task(day, task_id):
    try:
        _loaded_store().delete(_user_id(), day, task_id)
    except KeyError:
        abort(404)
    except TaskcalError as exc:
        flash(str(exc), 'error')
    return _back_to_day(day)


# --- JSON API ---
@bp.route('/api/tasks')
@login_required
def api_tasks():
    store = _store()
    try:
        tasks = store.load_all(_user_id())
    except FetchError as exc:
        return _json_error(str(exc), 502)
    return jsonify({'status': 'success', 'tasks': _tasks_json(tasks)})


@bp.route('/api/summary')
@login_required
def api_summary():
    now = _now()
    store = _store()
    try:
        tasks = store.load_all(_user_id())
    except FetchError as exc:
        return _json_error(str(exc), 502)

    data = summarize(tasks, now).to_dict()
    data['status'] = 'success'
    data['today'] = date_key(now)
    return jsonify(data)


@bp.route('/api/days/<day>', methods=['PUT'])
@login_required
def api_replace_day(day):
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        payload = payload.get('tasks')
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        return _json_error('Expected a list of tasks', 400)

    try:
        parse_date_key(day)
        tasks = [Task.from_dict(item, day) for item in payload]
    except ValidationError as exc:
        return _json_error(str(exc), 400)

    store = _store()
    try:
        store.load_all(_user_id())
        store.replace_day(_user_id(), day, tasks)
    except ValidationError as exc:
        return _json_error(str(exc), 400)
    except (WriteError, FetchError) as exc:
        return _json_error(str(exc), 502)

    return jsonify({'status': 'success', 'date': day,
                    'tasks': [t.to_dict() for t in store.day(day)]})
