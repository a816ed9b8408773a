"""
Unit Tests for ProgressState

Tests for log capacity, monotonic percent and observer notification.
"""
import pytest

from oncovector.core.pipeline import LOG_CAPACITY, PipelineStage, ProgressState
from oncovector.utils import OncoVectorError, ProgressInvariantError


class TestProgressState:

    def test_initial_state(self):
        state = ProgressState()
        snapshot = state.snapshot()

        assert snapshot.stage == PipelineStage.IDLE
        assert snapshot.percent == 0
        assert snapshot.log == ()

    def test_log_capacity(self):
        state = ProgressState()
        for i in range(10):
            state.append_log(f"> entry {i}")
            assert len(state.log) <= LOG_CAPACITY

        assert state.log == ("> entry 6", "> entry 7", "> entry 8", "> entry 9")

    def test_advance_updates_fields(self):
        state = ProgressState()
        state.advance(PipelineStage.VISION, "Analyzing Visual Structures", 15)
        state.advance(PipelineStage.VISION, percent=30)

        assert state.stage == PipelineStage.VISION
        assert state.label == "Analyzing Visual Structures"
        assert state.percent == 30

    def test_percent_cannot_decrease(self):
        state = ProgressState()
        state.advance(PipelineStage.RETRIEVAL, "Traversing Vector Space", 60)

        with pytest.raises(ProgressInvariantError):
            state.advance(PipelineStage.RETRIEVAL, percent=45)
        assert state.percent == 60

    def test_invariant_error_is_not_user_facing(self):
        assert not issubclass(ProgressInvariantError, OncoVectorError)
        assert issubclass(ProgressInvariantError, AssertionError)

    @pytest.mark.parametrize("percent", [-1, 101])
    def test_percent_out_of_range(self, percent):
        with pytest.raises(ProgressInvariantError):
            ProgressState().advance(PipelineStage.VISION, percent=percent)

    def test_reset_starts_new_run(self):
        state = ProgressState()
        state.advance(PipelineStage.DONE, "Finalizing Report", 100)
        state.append_log("> Output generated successfully.")

        state.reset(PipelineStage.VISION, "Booting Neural Engines...", 5, first_entry="> init")

        assert state.percent == 5
        assert state.stage == PipelineStage.VISION
        assert state.log == ("> init",)

    def test_observers_receive_snapshots(self):
        state = ProgressState()
        seen = []
        unsubscribe = state.subscribe(seen.append)

        state.advance(PipelineStage.VISION, "Skipping Vision Layer", 30)
        state.append_log("> No image data provided.")
        unsubscribe()
        state.advance(PipelineStage.REGISTRY, percent=45)

        assert [s.percent for s in seen] == [30, 30]
        assert seen[-1].log == ("> No image data provided.",)

    def test_failing_observer_does_not_break_writer(self):
        state = ProgressState()
        seen = []

        def broken(snapshot):
            raise RuntimeError("render failed")

        state.subscribe(broken)
        state.subscribe(seen.append)
        state.advance(PipelineStage.VISION, percent=15)

        assert state.percent == 15
        assert len(seen) == 1

    def test_snapshot_is_immutable(self):
        state = ProgressState()
        state.append_log("> a")
        snapshot = state.snapshot()
        state.append_log("> b")

        assert snapshot.log == ("> a",)
        assert snapshot.to_dict()["log"] == ["> a"]
