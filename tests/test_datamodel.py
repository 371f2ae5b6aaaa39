from datetime import datetime

import pytest

from reminder_hub.core.due import is_due
from reminder_hub.datamodel import MalformedReminderError, Recurrence, Reminder


def test_record_round_trips_unchanged():
    raw = {
        "id": "r1",
        "text": "Water plants",
        "date": "2024-03-15",
        "time": "09:00",
        "recurrence": "weekly",
        "completed": False,
        "completedAt": None,
        "notes": "balcony too",
        "category": "home",
    }

    reminder = Reminder.from_dict(raw)

    assert reminder.extra == {"category": "home"}
    assert reminder.to_dict() == raw
    assert Reminder.from_dict(reminder.to_dict()) == reminder


def test_optional_fields_are_omitted_when_absent():
    data = Reminder(id="r2", text="Call mom", date="2024-03-15").to_dict()
    assert data == {"id": "r2", "text": "Call mom", "date": "2024-03-15", "completed": False, "completedAt": None}


@pytest.mark.parametrize(
    "record",
    [
        {"text": "no id", "date": "2024-01-01"},
        {"id": "", "text": "empty id", "date": "2024-01-01"},
        {"id": "x", "date": "2024-01-01"},
        {"id": "x", "text": "   ", "date": "2024-01-01"},
        {"id": "x", "text": "no date"},
        {"id": "x", "text": "short date", "date": "2024-1-5"},
        {"id": "x", "text": "impossible date", "date": "2024-02-30"},
        {"id": "x", "text": "bad time", "date": "2024-01-01", "time": "9:00"},
        {"id": "x", "text": "impossible time", "date": "2024-01-01", "time": "25:00"},
        {"id": "x", "text": "string flag", "date": "2024-01-01", "completed": "false"},
        {"id": "x", "text": "done without stamp", "date": "2024-01-01", "completed": True, "completedAt": None},
        {"id": "x", "text": "done, empty stamp", "date": "2024-01-01", "completed": True, "completedAt": ""},
        {"id": "x", "text": "stale stamp", "date": "2024-01-01", "completed": False,
         "completedAt": "2024-01-01T10:00:00"},
    ],
)
def test_malformed_records_are_rejected(record):
    with pytest.raises(MalformedReminderError):
        Reminder.from_dict(record)


def test_non_object_record_is_rejected():
    with pytest.raises(MalformedReminderError):
        Reminder.from_dict(["not", "a", "record"])


def test_new_assigns_id_and_normalizes_fields():
    reminder = Reminder.new("  Buy milk  ", "2024-03-15", None, "Daily", "  ")

    assert reminder.id
    assert reminder.text == "Buy milk"
    assert reminder.recurrence == "daily"
    assert reminder.notes is None
    assert reminder.completed is False and reminder.completed_at is None


def test_new_drops_unknown_recurrence():
    reminder = Reminder.new("Stretch", "2024-03-15", recurrence="hourly")
    assert reminder.recurrence is None
    assert reminder.recurrence_kind is Recurrence.NONE


def test_completion_timestamp_follows_completed_flag():
    reminder = Reminder(id="r3", text="Dentist", date="2024-03-15")

    done = reminder.mark_completed("2024-03-15T10:00:00")
    assert (done.completed, done.completed_at) == (True, "2024-03-15T10:00:00")
    assert (reminder.completed, reminder.completed_at) == (False, None)

    reopened = done.reopen()
    assert (reopened.completed, reopened.completed_at) == (False, None)


class TestIsDue:
    def test_timed_reminder_is_due_at_and_after_its_time(self):
        reminder = Reminder(id="r", text="t", date="2024-03-15", time="09:00")
        assert not is_due(reminder, datetime(2024, 3, 15, 8, 59))
        assert is_due(reminder, datetime(2024, 3, 15, 9, 0))
        assert is_due(reminder, datetime(2024, 3, 16, 7, 0))

    def test_untimed_reminder_is_due_from_start_of_day(self):
        reminder = Reminder(id="r", text="t", date="2024-03-15")
        assert not is_due(reminder, datetime(2024, 3, 14, 23, 59))
        assert is_due(reminder, datetime(2024, 3, 15, 0, 0))

    def test_completed_reminder_is_never_due(self):
        reminder = Reminder(id="r", text="t", date="2024-03-01", completed=True, completed_at="2024-03-01T10:00:00")
        assert not is_due(reminder, datetime(2024, 3, 15, 12, 0))
