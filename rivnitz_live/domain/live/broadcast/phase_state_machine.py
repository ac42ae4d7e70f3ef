"""Phase state machine for the broadcaster's go-live flow."""

from rivnitz_live.schemas.live_state import LivePhase


class LivePhaseMachine:
    """State machine for go-live phase transitions.

    State flow with triggers:
    - SETUP -> PREVIEW (camera test requested with a title and channel name)
    - PREVIEW -> SETUP (preview cancelled) | LIVE (go live succeeded)
    - LIVE -> ENDING (end session, or sign out while live)
    - ENDING -> SETUP (teardown completed)

    A failed step never advances the phase: a camera failure keeps SETUP and a
    go-live failure keeps PREVIEW.
    """

    TRANSITIONS: dict[LivePhase, set[LivePhase]] = {
        LivePhase.SETUP: {LivePhase.PREVIEW},
        LivePhase.PREVIEW: {LivePhase.SETUP, LivePhase.LIVE},
        LivePhase.LIVE: {LivePhase.ENDING},
        LivePhase.ENDING: {LivePhase.SETUP},
    }

    # ENDING only exists while teardown runs
    TRANSIENT_PHASES: set[LivePhase] = {LivePhase.ENDING}

    @classmethod
    def can_transition(cls, current: LivePhase, new: LivePhase) -> bool:
        """Check if phase transition is valid.

        Args:
            current: Current phase
            new: Target phase

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_transient(cls, phase: LivePhase) -> bool:
        return phase in cls.TRANSIENT_PHASES

    @classmethod
    def get_valid_transitions(cls, phase: LivePhase) -> set[LivePhase]:
        return cls.TRANSITIONS.get(phase, set())

    @classmethod
    def get_valid_sources(cls, target: LivePhase) -> set[LivePhase]:
        """Get all phases that can transition to the target phase."""
        return {phase for phase, targets in cls.TRANSITIONS.items() if target in targets}
