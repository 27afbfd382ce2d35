"""
Event Bus - Central signal hub for inter-module communication.

Presentation layers and the match executor connect to this single object
rather than to the tournament controller directly.
"""

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """
    Central signal hub for Matchday.

    The EventBus sits between the tournament controller and its listeners:
    - TournamentController emits lifecycle and result events
    - Displays listen and refresh schedules and standings
    - The match executor listens for the next match to play

    Usage:
        bus = EventBus()
        bus.connect_controller(controller)
        bus.tournament_match_ended.connect(self._on_match_ended)
    """

    # ============ Tournament Lifecycle ============
    tournament_start_or_load = Signal(str, bool)      # tournament_id, was_loaded
    tournament_started_or_loaded = Signal(str, bool)  # tournament_id, was_loaded
    tournament_ended = Signal(str)                    # tournament_id

    # ============ Results ============
    tournament_match_ended = Signal(str, bool)        # tournament_id, had_error
    standings_updated = Signal()

    # ============ Match Executor ============
    next_match_ready = Signal(dict)     # {index, team_ids, field_id, match_day}

    # ============ System Events ============
    database_error = Signal(str)        # Database error message
    system_message = Signal(str, str)   # (level, message) - e.g., ("info", "Tournament saved")

    def __init__(self):
        super().__init__()

    def connect_controller(self, controller) -> None:
        """Forward a TournamentController's signals through the bus."""
        controller.tournament_start_or_load.connect(self.tournament_start_or_load)
        controller.tournament_started_or_loaded.connect(self.tournament_started_or_loaded)
        controller.tournament_ended.connect(self.tournament_ended)
        controller.tournament_match_ended.connect(self.tournament_match_ended)
        controller.standings_updated.connect(self.standings_updated)
        controller.system_message.connect(self.system_message)

    def emit_next_match(self, index: int, team_ids: list, field_id, match_day: int) -> None:
        """Convenience method to announce the next match to play."""
        self.next_match_ready.emit({
            "index": index,
            "team_ids": list(team_ids),
            "field_id": field_id,
            "match_day": match_day,
        })

    def emit_message(self, level: str, message: str) -> None:
        """Emit a system message (info, warning, error)."""
        self.system_message.emit(level, message)
