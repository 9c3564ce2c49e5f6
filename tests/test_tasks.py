import pytest

from taskcal.errors import ValidationError
from taskcal.tasks import DurableId, PendingId, Task, new_pending_id, parse_task_id


class TestTaskIds:
    def test_pending_ids_are_unique(self):
        assert new_pending_id() != new_pending_id()

    def test_wire_forms(self):
        assert str(PendingId('abc')) == 'tmp-abc'
        assert str(DurableId(42)) == '42'

    def test_parse(self):
        assert parse_task_id('tmp-abc') == PendingId('abc')
        assert parse_task_id('42') == DurableId(42)
        assert parse_task_id(42) == DurableId(42)
        assert parse_task_id(DurableId(7)) == DurableId(7)

    @pytest.mark.parametrize('bad', ['tmp-', 'abc', '4.2', '-3', '', None, True])
    def test_parse_rejects_everything_else(self, bad):
        with pytest.raises(ValidationError):
            parse_task_id(bad)


class TestTaskFromDict:
    def test_stamps_date_and_cleans_text(self):
        task = Task.from_dict({'id': '5', 'title': '  Read  ', 'description': ' ', 'completed': True}, '2024-06-10')

        assert task == Task(id=DurableId(5), title='Read', date='2024-06-10', completed=True, description=None)

    def test_missing_id_becomes_pending(self):
        task = Task.from_dict({'title': 'Run'}, '2024-06-10')
        assert isinstance(task.id, PendingId)
        assert task.completed is False

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            Task.from_dict({'title': '   '}, '2024-06-10')

    def test_to_dict(self):
        task = Task(id=PendingId('x'), title='Run', date='2024-06-10')
        assert task.to_dict() == {
            'id': 'tmp-x', 'title': 'Run', 'description': None, 'completed': False, 'date': '2024-06-10',
        }
