"""
Tests for the presence stage.
"""

from models.detection import DetectedObject
from models.events import EnterEvent, ExitEvent
from pipeline.stages.presence import (
    PresenceTracker,
    is_person_present,
    other_classes,
    transition,
)


def _det(class_name, score=0.9):
    return DetectedObject.from_xywh(class_name, score, 0, 0, 10, 10)


class TestIsPersonPresent:
    def test_empty_set(self):
        assert is_person_present(()) is False

    def test_person_anywhere_in_set(self):
        """Position of the person detection does not matter."""
        for dets in [
            (_det("person"),),
            (_det("dog"), _det("person")),
            (_det("cat"), _det("chair"), _det("person"), _det("dog")),
        ]:
            assert is_person_present(dets) is True

    def test_no_person(self):
        assert is_person_present((_det("dog"), _det("cat"))) is False

    def test_class_name_match_is_exact(self):
        assert is_person_present((_det("Person"), _det("persons"))) is False


class TestOtherClasses:
    def test_dedup_in_first_seen_order(self):
        dets = (_det("dog"), _det("person"), _det("backpack"), _det("dog"))
        assert other_classes(dets) == ("dog", "backpack")

    def test_person_excluded(self):
        assert other_classes((_det("person"), _det("person"))) == ()


class TestTransition:
    def test_absent_to_present(self):
        present, event = transition(False, (_det("person"), _det("dog")))
        assert present is True
        assert event == EnterEvent(other_classes=("dog",))

    def test_present_to_absent(self):
        present, event = transition(True, ())
        assert present is False
        assert event == ExitEvent()

    def test_no_edge(self):
        assert transition(False, (_det("dog"),)) == (False, None)
        assert transition(True, (_det("person"),)) == (True, None)


class TestPresenceTracker:
    def test_edges_only(self):
        tracker = PresenceTracker()
        events = [
            tracker.update(dets)
            for dets in [
                (),
                (_det("person"),),
                (_det("person"), _det("dog")),
                (),
                (),
            ]
        ]
        assert events == [None, EnterEvent(()), None, ExitEvent(), None]

    def test_reentry_emits_new_enter(self):
        tracker = PresenceTracker()
        tracker.update((_det("person"),))
        tracker.update(())
        assert tracker.update((_det("person"), _det("cat"))) == EnterEvent(("cat",))
