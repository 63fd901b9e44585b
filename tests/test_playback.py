"""
Tests for playback synchronisation of looping clips.
"""

from booth_transitions.generation.playback import ClipPlayhead, PlaybackSynchronizer


class TestPlaybackSynchronizer:
    """Reset rewinds every photo and bumps the generation."""

    def test_reset_rewinds_all(self):
        synchronizer = PlaybackSynchronizer()
        synchronizer.mark_playing("a", 2)
        synchronizer.mark_playing("b", 1)

        generation = synchronizer.reset(["a", "b"])

        assert generation == 1
        assert synchronizer.current_index("a") == 0
        assert synchronizer.current_index("b") == 0

    def test_listeners_receive_generation(self):
        synchronizer = PlaybackSynchronizer()
        seen = []
        unsubscribe = synchronizer.subscribe(seen.append)

        synchronizer.reset(["a"])
        unsubscribe()
        synchronizer.reset(["a"])

        assert seen == [1]
        assert synchronizer.sync_generation == 2

    def test_clear_forgets_indices(self):
        synchronizer = PlaybackSynchronizer()
        synchronizer.mark_playing("a", 3)
        synchronizer.clear()
        assert synchronizer.current_index("a") == 0


class TestClipPlayhead:
    """A playhead jumps to zero on a new sync generation."""

    def test_loops_within_clip(self):
        playhead = ClipPlayhead(PlaybackSynchronizer(), "a")
        playhead.advance(3.0, 5.0)
        assert playhead.advance(3.0, 5.0) == 1.0

    def test_restarts_on_sync(self):
        synchronizer = PlaybackSynchronizer()
        early = ClipPlayhead(synchronizer, "a")
        late = ClipPlayhead(synchronizer, "b")
        early.advance(4.0, 5.0)
        late.advance(1.5, 5.0)

        synchronizer.reset(["a", "b"])

        assert early.advance(0.5, 5.0) == 0.0
        assert late.advance(0.5, 5.0) == 0.0
        assert early.advance(0.5, 5.0) == late.advance(0.5, 5.0) == 0.5

    def test_observe_reports_reset_once(self):
        synchronizer = PlaybackSynchronizer()
        playhead = ClipPlayhead(synchronizer, "a")
        synchronizer.reset(["a"])
        assert playhead.observe() is True
        assert playhead.observe() is False
