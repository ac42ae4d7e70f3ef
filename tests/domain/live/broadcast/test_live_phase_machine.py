"""Tests for LivePhaseMachine phase transitions."""

from rivnitz_live.domain.live.broadcast.phase_state_machine import LivePhaseMachine
from rivnitz_live.schemas.live_state import LivePhase


class TestCanTransition:
    """Tests for LivePhaseMachine.can_transition method."""

    def test_setup_to_preview_valid(self):
        """Test SETUP -> PREVIEW is a valid transition."""
        assert LivePhaseMachine.can_transition(LivePhase.SETUP, LivePhase.PREVIEW) is True

    def test_setup_to_live_invalid(self):
        """Test SETUP -> LIVE is invalid (the camera must be tested first)."""
        assert LivePhaseMachine.can_transition(LivePhase.SETUP, LivePhase.LIVE) is False

    def test_preview_to_live_valid(self):
        """Test PREVIEW -> LIVE is a valid transition."""
        assert LivePhaseMachine.can_transition(LivePhase.PREVIEW, LivePhase.LIVE) is True

    def test_preview_to_setup_valid(self):
        """Test PREVIEW -> SETUP is a valid transition (preview cancelled)."""
        assert LivePhaseMachine.can_transition(LivePhase.PREVIEW, LivePhase.SETUP) is True

    def test_live_to_ending_valid(self):
        """Test LIVE -> ENDING is a valid transition."""
        assert LivePhaseMachine.can_transition(LivePhase.LIVE, LivePhase.ENDING) is True

    def test_live_to_setup_invalid(self):
        """Test LIVE -> SETUP is invalid (must go through ENDING)."""
        assert LivePhaseMachine.can_transition(LivePhase.LIVE, LivePhase.SETUP) is False

    def test_live_to_preview_invalid(self):
        """Test LIVE -> PREVIEW is invalid."""
        assert LivePhaseMachine.can_transition(LivePhase.LIVE, LivePhase.PREVIEW) is False

    def test_ending_to_setup_valid(self):
        """Test ENDING -> SETUP is a valid transition."""
        assert LivePhaseMachine.can_transition(LivePhase.ENDING, LivePhase.SETUP) is True

    def test_ending_to_live_invalid(self):
        """Test ENDING -> LIVE is invalid."""
        assert LivePhaseMachine.can_transition(LivePhase.ENDING, LivePhase.LIVE) is False

    def test_self_transitions_invalid(self):
        """Test no phase transitions to itself."""
        for phase in LivePhase:
            assert LivePhaseMachine.can_transition(phase, phase) is False


class TestTransitionQueries:
    """Tests for get_valid_transitions / get_valid_sources / is_transient."""

    def test_every_phase_has_transitions(self):
        """Test the machine has no terminal phase."""
        for phase in LivePhase:
            assert LivePhaseMachine.get_valid_transitions(phase)

    def test_only_ending_leads_back_from_live(self):
        """Test LIVE can only be left through ENDING."""
        assert LivePhaseMachine.get_valid_transitions(LivePhase.LIVE) == {LivePhase.ENDING}

    def test_sources_of_setup(self):
        """Test SETUP is reached from PREVIEW and ENDING."""
        assert LivePhaseMachine.get_valid_sources(LivePhase.SETUP) == {
            LivePhase.PREVIEW,
            LivePhase.ENDING,
        }

    def test_sources_of_live(self):
        """Test LIVE is reached only from PREVIEW."""
        assert LivePhaseMachine.get_valid_sources(LivePhase.LIVE) == {LivePhase.PREVIEW}

    def test_ending_is_transient(self):
        """Test ENDING is the only transient phase."""
        assert LivePhaseMachine.is_transient(LivePhase.ENDING) is True
        assert LivePhaseMachine.is_transient(LivePhase.LIVE) is False
