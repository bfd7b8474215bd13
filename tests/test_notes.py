"""Tests for ActiveNoteRegistry."""

from sfplay.notes import ActiveNoteRegistry


class StopRecorder:
    def __init__(self, fail_on=()):
        self.stopped = []
        self.fail_on = set(fail_on)

    def __call__(self, handle):
        if handle in self.fail_on:
            raise RuntimeError("already released")
        self.stopped.append(handle)


class TestActiveNoteRegistry:
    def test_note_on_registers(self):
        registry = ActiveNoteRegistry(StopRecorder())
        registry.note_on(0, 60, "h1")
        assert (0, 60) in registry
        assert len(registry) == 1

    def test_note_off_stops_and_removes(self):
        stop = StopRecorder()
        registry = ActiveNoteRegistry(stop)
        registry.note_on(0, 60, "h1")
        assert registry.note_off(0, 60) is True
        assert stop.stopped == ["h1"]
        assert len(registry) == 0

    def test_unmatched_note_off_is_noop(self):
        stop = StopRecorder()
        registry = ActiveNoteRegistry(stop)
        registry.note_on(0, 60, "h1")
        assert registry.note_off(1, 60) is False
        assert registry.note_off(0, 61) is False
        assert stop.stopped == []
        assert len(registry) == 1

    def test_retrigger_stops_previous_handle(self):
        stop = StopRecorder()
        registry = ActiveNoteRegistry(stop)
        registry.note_on(2, 64, "first")
        registry.note_on(2, 64, "second")
        assert stop.stopped == ["first"]
        assert len(registry) == 1
        assert registry.active()[0].handle == "second"

    def test_same_pitch_on_other_channel_is_separate(self):
        registry = ActiveNoteRegistry(StopRecorder())
        registry.note_on(0, 60, "a")
        registry.note_on(1, 60, "b")
        assert len(registry) == 2

    def test_stop_all_issues_one_stop_per_note(self):
        stop = StopRecorder()
        registry = ActiveNoteRegistry(stop)
        for pitch in range(60, 72):
            registry.note_on(0, pitch, f"h{pitch}")
        assert registry.stop_all() == 12
        assert len(registry) == 0
        assert sorted(stop.stopped) == sorted(f"h{p}" for p in range(60, 72))

    def test_stop_all_on_empty_registry(self):
        stop = StopRecorder()
        registry = ActiveNoteRegistry(stop)
        assert registry.stop_all() == 0
        assert stop.stopped == []

    def test_failing_stop_still_removes_note(self):
        stop = StopRecorder(fail_on={"bad"})
        registry = ActiveNoteRegistry(stop)
        registry.note_on(0, 60, "bad")
        registry.note_on(0, 62, "good")
        assert registry.stop_all() == 2
        assert len(registry) == 0
        assert stop.stopped == ["good"]
