from reminder_hub.core.dedup import DeliveryTracker
from reminder_hub.core.hub import NotificationHub
from reminder_hub.datamodel import Reminder


def _reminder(reminder_id: str, text: str = "x") -> Reminder:
    return Reminder(id=reminder_id, text=text, date="2024-03-15", time="09:00")


class TestDeliveryTracker:
    def test_notify_once_until_reset(self):
        tracker = DeliveryTracker()
        assert tracker.should_attempt_notify("a")

        tracker.mark_notified("a")
        assert not tracker.should_attempt_notify("a")
        assert "a" in tracker and len(tracker) == 1

        tracker.reset("a")
        assert tracker.should_attempt_notify("a")

    def test_reset_unknown_id_is_harmless(self):
        tracker = DeliveryTracker()
        tracker.reset("missing")
        assert len(tracker) == 0

    def test_prune_missing_drops_ids_not_active(self):
        tracker = DeliveryTracker()
        for rid in ("a", "b", "c"):
            tracker.mark_notified(rid)

        pruned = tracker.prune_missing({"b", "z"})

        assert pruned == {"a", "c"}
        assert tracker.snapshot() == {"b"}


class TestNotificationHub:
    def test_subscriber_receives_current_set_immediately(self):
        hub = NotificationHub()
        hub.publish_add(_reminder("a"))
        seen = []

        hub.subscribe(seen.append)

        assert [[r.id for r in snap] for snap in seen] == [["a"]]

    def test_every_change_fans_out_the_full_set(self):
        hub = NotificationHub()
        first, second = [], []
        hub.subscribe(first.append)
        hub.subscribe(second.append)

        hub.publish_add(_reminder("a"))
        hub.publish_add(_reminder("b"))
        hub.publish_remove("a")

        expected = [[], ["a"], ["a", "b"], ["b"]]
        assert [[r.id for r in snap] for snap in first] == expected
        assert [[r.id for r in snap] for snap in second] == expected

    def test_publish_add_replaces_existing_snapshot_in_place(self):
        hub = NotificationHub()
        hub.publish_add(_reminder("a", "old"))
        hub.publish_add(_reminder("b"))

        hub.publish_add(_reminder("a", "new"))

        assert [(r.id, r.text) for r in hub.active] == [("a", "new"), ("b", "x")]

    def test_removing_absent_id_does_not_notify(self):
        hub = NotificationHub()
        seen = []
        hub.subscribe(seen.append)

        assert hub.publish_remove("ghost") is False
        assert len(seen) == 1

    def test_unsubscribe_stops_updates(self):
        hub = NotificationHub()
        seen = []
        unsubscribe = hub.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        hub.publish_add(_reminder("a"))

        assert len(seen) == 1
        assert hub.subscriber_count == 0

    def test_failing_listener_does_not_block_others(self):
        hub = NotificationHub()
        seen = []

        def broken(_snapshot):
            raise RuntimeError("widget crashed")

        hub.subscribe(broken)
        hub.subscribe(seen.append)
        hub.publish_add(_reminder("a"))

        assert [[r.id for r in snap] for snap in seen] == [[], ["a"]]

    def test_listener_cannot_mutate_hub_state(self):
        hub = NotificationHub()
        hub.subscribe(lambda snapshot: snapshot.clear())
        hub.publish_add(_reminder("a"))
        assert [r.id for r in hub.active] == ["a"]

    def test_prune_fans_out_once(self):
        hub = NotificationHub()
        for rid in ("a", "b", "c"):
            hub.publish_add(_reminder(rid))
        seen = []
        hub.subscribe(seen.append)

        pruned = hub.prune({"b"})

        assert pruned == {"a", "c"}
        assert [[r.id for r in snap] for snap in seen] == [["a", "b", "c"], ["b"]]
        assert hub.prune({"b"}) == set()
        assert len(seen) == 2
