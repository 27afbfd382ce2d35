"""
Tournament Controller

Owns the lifecycle of the active tournament:
NotStarted -> InProgress -> Done

Usage:
    controller = TournamentController(registry, teams, fields, store=store)
    controller.start_new_tournament("league", ["lions"])
    match = controller.start_next_match()
    controller.end_match("lions", 2, "tigers", 1)

Only the controller mutates the Tournament. Results come in through
end_match(); everything else is read through the accessors.
"""

import random
from typing import Optional, Protocol, runtime_checkable

from PySide6.QtCore import QObject, Signal

from config import (
    AI_RESOLVE_SETTINGS,
    MATCH_SETTINGS,
    TOURNAMENT_RULES,
    AiResolveSettings,
    MatchSettings,
    TournamentRules,
)
from engine.ai_resolver import AiResolver, AiResolveReport
from engine.catalogs import FieldCatalog, TeamCatalog
from engine.errors import InvalidConfiguration, InvalidMatchResult, MissingDependency, TournamentError
from engine.match_info import MatchInfo, mark_players
from engine.match_maker import MatchMaker, Schedule, ScheduleReport
from engine.standings import StandingsEngine, TeamStats
from engine.tournament import Tournament
from engine.tournament_settings import DerivedSettings, TournamentSettingsRegistry, derive_settings
from models.schemas import TournamentSettings
from models.tournament import FieldSelectSequence, TournamentType
from services.logger import get_logger


log = get_logger("engine.controller")

# Human teams supported in one tournament
MAX_PLAYER_TEAMS = 2


@runtime_checkable
class CustomMatchMaker(Protocol):
    """Schedule provider for TournamentType.CUSTOM tournaments."""

    def derive_settings(self, settings: TournamentSettings) -> DerivedSettings:
        ...

    def create_matches(
        self,
        derived: DerivedSettings,
        team_ids: list[str],
        player_team_ids: list[str],
        rng: random.Random,
    ) -> Schedule:
        ...

    def on_new_or_loaded(self, tournament: Tournament) -> None:
        """Called after a start or load, once the human flags are set."""
        ...

    def on_match_ended(self, tournament: Tournament) -> None:
        """
        Called after every recorded result, once the current match has moved on.

        Standings, home teams and the field are updated afterwards, so
        teams placed into later matches here are picked up.
        """
        ...


class TournamentController(QObject):
    """
    Runs a tournament from start to final.

    Randomness comes from a per-tournament seed, so a tournament can be
    replayed from its seed and restored after a save/load.
    """

    # Signals
    tournament_start_or_load = Signal(str, bool)  # tournament id, was loaded
    tournament_started_or_loaded = Signal(str, bool)  # tournament id, was loaded
    tournament_match_ended = Signal(str, bool)  # tournament id, had error
    tournament_ended = Signal(str)  # tournament id
    standings_updated = Signal()
    system_message = Signal(str, str)  # (level, message)

    def __init__(
        self,
        registry: TournamentSettingsRegistry,
        team_catalog: TeamCatalog,
        field_catalog: FieldCatalog,
        store=None,
        rules: TournamentRules = TOURNAMENT_RULES,
        ai_settings: AiResolveSettings = AI_RESOLVE_SETTINGS,
        match_settings: MatchSettings = MATCH_SETTINGS,
        seed: Optional[int] = None,
        custom_match_makers: Optional[dict[str, CustomMatchMaker]] = None,
    ):
        super().__init__()
        self.registry = registry
        self.team_catalog = team_catalog
        self.field_catalog = field_catalog
        self.store = store
        self.rules = rules
        self.ai_settings = ai_settings
        self.match_settings = match_settings
        self.custom_match_makers: dict[str, CustomMatchMaker] = dict(custom_match_makers or {})

        self.tournament = Tournament()
        self.schedule_report: Optional[ScheduleReport] = None

        self._derived: Optional[DerivedSettings] = None
        self._standings = StandingsEngine(rules)
        self._stats: dict[str, TeamStats] = {}
        self._log: list[TeamStats] = []
        self._field_id: Optional[str] = None

        # Seeds new tournaments; each tournament then has its own generator
        self._seed_source = random.Random(seed)
        self._rng = random.Random()

    # ============ Lifecycle ============

    def start_new_tournament(
        self,
        tournament_id: str,
        player_team_ids: list[str],
        team_ids: Optional[list[str]] = None,
    ) -> Tournament:
        """
        Start a new tournament, ending any active one.

        Args:
            tournament_id: Id of a registered tournament definition
            player_team_ids: Human teams, in player slot order (0 to 2 teams)
            team_ids: All teams in play order; generated from the team
                catalog if not supplied

        Returns:
            The new tournament

        Raises:
            InvalidConfiguration: Unknown tournament, bad team count or player list
            SchedulingFailed: No schedule could be built
            MissingDependency: The catalogs cannot supply teams or fields
        """
        self.end_tournament()

        try:
            settings = self.registry.get(tournament_id)
            players = self._validate_players(player_team_ids)
            custom = self._custom_match_maker(settings)
            derived = custom.derive_settings(settings) if custom else derive_settings(settings, self.rules)

            if self.field_catalog.get_random_field() is None:
                raise MissingDependency("The field catalog has no fields")

            seed = self._seed_source.randrange(2 ** 31)
            rng = random.Random(seed)

            if team_ids is None:
                team_ids = self.generate_team_ids(derived, players)
            else:
                team_ids = list(team_ids)

            if custom:
                schedule = custom.create_matches(derived, team_ids, players, rng)
            else:
                schedule = MatchMaker(rng, self.rules).create_matches(derived, team_ids, players)
        except TournamentError as e:
            log.warning("Could not start tournament '%s': %s", tournament_id, e)
            self.end_tournament()
            raise

        t = self.tournament
        t.tournament_id = settings.id
        t.type = derived.type
        t.team_ids = list(team_ids)
        t.player_team_ids = players
        t.match_infos = schedule.matches
        t.groups = schedule.groups
        t.current_match_index = 0
        t.done = False
        t.random_seed = seed
        t.difficulty = self.match_settings.difficulty

        self._derived = derived
        self._rng = rng
        self.schedule_report = schedule.report

        log.info(
            "Started tournament '%s' (%s): %d teams, %d matches, seed %d",
            t.tournament_id, t.type.value, len(t.team_ids), len(t.match_infos), seed,
        )

        self._on_new_or_loaded(was_loaded=False)
        self.save()
        return t

    def end_tournament(self) -> None:
        """End the active tournament and clear all of its state. Safe to call repeatedly."""
        tournament_id = self.tournament.tournament_id
        was_active = self.tournament.is_active

        self.tournament.clear()
        self.schedule_report = None
        self._derived = None
        self._stats = {}
        self._log = []
        self._field_id = None
        if self.store is not None:
            self.store.clear()

        if was_active:
            log.info("Ended tournament '%s'", tournament_id)
            self.tournament_ended.emit(tournament_id or "")

    def generate_team_ids(self, derived: DerivedSettings, player_team_ids: list[str]) -> list[str]:
        """
        Pick the teams for a new tournament: human teams first, then random teams.

        Raises:
            MissingDependency: If a player team is unknown or the catalog has too few teams
        """
        for team_id in player_team_ids:
            if self.team_catalog.get_team(team_id) is None:
                raise MissingDependency(f"Team catalog has no team {team_id}")

        chosen = list(player_team_ids)
        while len(chosen) < derived.max_teams:
            remaining = [tid for tid in self.team_catalog.team_ids() if tid not in chosen]
            team = self.team_catalog.get_random_team(from_ids=remaining)
            if team is None:
                raise MissingDependency(
                    f"Tournament '{derived.id}' needs {derived.max_teams} teams, "
                    f"the team catalog only has {len(chosen)} to offer"
                )
            chosen.append(team.id)
        return chosen

    # ============ Results ============

    def end_match(
        self,
        team_a: str,
        score_a: int,
        team_b: str,
        score_b: int,
        forfeit_team: Optional[str] = None,
    ) -> AiResolveReport:
        """
        Record the result of the current match and advance the tournament.

        Scores are matched to the scheduled slots by team id, so the teams
        may be passed in either order. AI-only matches that follow are
        resolved straight away.

        Args:
            team_a: One team of the current match
            score_a: Goals scored by team_a
            team_b: The other team
            score_b: Goals scored by team_b
            forfeit_team: The team that forfeited, if any

        Returns:
            Report of the AI-only matches resolved afterwards

        Raises:
            InvalidMatchResult: If the result does not fit the current match.
                The tournament is left unchanged.
        """
        self._record_result(team_a, score_a, team_b, score_b, forfeit_team)
        report = self.resolve_ai_matches(include_final_match=True)
        self.save()
        return report

    def _record_result(
        self,
        team_a: str,
        score_a: int,
        team_b: str,
        score_b: int,
        forfeit_team: Optional[str] = None,
    ) -> None:
        t = self.tournament
        match = t.current_match if t.is_active and not t.done else None
        if match is None:
            raise InvalidMatchResult("There is no match in progress")
        index = t.current_match_index

        if match.is_done:
            raise InvalidMatchResult(f"Match {index} has already been played")
        if not match.has_teams:
            raise InvalidMatchResult(f"Match {index} has no teams yet")
        if team_a == team_b or not match.has_team(team_a) or not match.has_team(team_b):
            raise InvalidMatchResult(
                f"Match {index} is {match.team_ids[0]} vs {match.team_ids[1]}, "
                f"got {team_a} vs {team_b}"
            )
        if score_a < 0 or score_b < 0:
            raise InvalidMatchResult("Scores cannot be negative")
        if forfeit_team is not None and not match.has_team(forfeit_team):
            raise InvalidMatchResult(f"Forfeiting team {forfeit_team} is not in match {index}")

        if match.team_ids[0] == team_a:
            scores = [score_a, score_b]
        else:
            scores = [score_b, score_a]

        if forfeit_team is not None:
            scores = self._forfeit_scores(match, scores, match.slot_of(forfeit_team))

        if match.needs_winner and scores[0] == scores[1]:
            raise InvalidMatchResult(f"Match {index} needs a winner, got a draw")

        match.team_scores = scores
        log.debug("Match %d: %s %d - %d %s", index,
                  match.team_ids[0], scores[0], scores[1], match.team_ids[1])

        if self._is_bracket:
            self.put_winner_in_next_match(index)

        t.current_match_index += 1
        custom = self._custom_match_maker_for_active()
        if custom:
            custom.on_match_ended(t)

        if t.current_match_index > t.final_match_index:
            self._finish()
        else:
            self._recompute_standings()
            if t.is_final_match:
                self.setup_final_match()
            self.update_match_home_teams()
            self.set_field()

        self.tournament_match_ended.emit(t.tournament_id or "", False)

    def _forfeit_scores(self, match: MatchInfo, scores: list[int], forfeit_slot: int) -> list[int]:
        """Scores after a forfeit: 0-0 between two humans, else a minimum win for the other side."""
        if match.is_player[0] and match.is_player[1] and not match.needs_winner:
            return [0, 0]

        other = 1 - forfeit_slot
        margin = self.rules.forfeit_win_score - self.rules.forfeit_lose_score
        if scores[other] - scores[forfeit_slot] <= margin:
            scores = [0, 0]
            scores[other] = self.rules.forfeit_win_score
            scores[forfeit_slot] = self.rules.forfeit_lose_score
        return scores

    def _finish(self) -> None:
        t = self.tournament
        if self._has_log:
            self._recompute_standings()

        t.done = True
        final = t.final_match
        if final is not None and final.is_done:
            self._record_final_result(final)
        log.info("Tournament '%s' done, winner %s", t.tournament_id, t.win_team_id)

    def _record_final_result(self, final: MatchInfo) -> None:
        t = self.tournament
        slot = final.winner_slot
        if slot < 0:
            return
        t.win_team_id = final.team_ids[slot]
        t.lose_team_id = final.team_ids[1 - slot]
        t.win_score = final.team_scores[slot]
        t.lose_score = final.team_scores[1 - slot]

    def put_winner_in_next_match(self, match_index: int) -> None:
        """Copy the winner of a bracket match into the first empty slot of the match it feeds."""
        t = self.tournament
        next_matches = self._derived.winner_next_match if self._derived else ()
        if match_index < 0 or match_index >= len(next_matches):
            return

        match = t.get_match(match_index)
        target_index = next_matches[match_index]
        target = t.get_match(target_index)
        if match is None or target is None:
            return

        slot = match.winner_slot
        if slot < 0:
            return

        for target_slot in (0, 1):
            if not target.team_ids[target_slot]:
                target.set_slot(target_slot, match.team_ids[slot],
                                match.is_player[slot], match.human_index[slot])
                # The other slot may already hold a team; its result is still open
                target.team_scores[1 - target_slot] = -1
                return

        log.warning("Match %d has no free slot for the winner of match %d", target_index, match_index)

    def setup_final_match(self) -> None:
        """Fill a log tournament's final with the top two teams of the log."""
        t = self.tournament
        final = t.final_match
        if final is None or not self._has_log or t.type != TournamentType.LOG:
            return
        if len(self._log) < 2:
            return

        scores = list(final.team_scores)
        for slot in (0, 1):
            team = self._log[slot]
            final.set_slot(slot, team.team_id, team.is_human, team.human_index)
        if scores[0] >= 0 and scores[1] >= 0:
            # Played before the log settled; keep the result with the current finalists
            final.team_scores = scores
            if t.done:
                self._record_final_result(final)

        final.home_team = -1
        log.debug("Final set up: %s vs %s", final.team_ids[0], final.team_ids[1])
        self.set_field()

    # ============ AI Matches ============

    def resolve_ai_matches(self, include_final_match: bool = True) -> AiResolveReport:
        """
        Resolve the AI-only matches at the current position.

        Soft failures are returned in the report and emitted as warnings.
        """
        t = self.tournament
        if not t.is_active or t.done:
            return AiResolveReport(stopped_at=t.current_match_index)

        resolver = AiResolver(self._rng, self.ai_settings)
        report = resolver.resolve_ai_only_prefix(
            t,
            self._stats,
            self._record_result,
            include_final_match=include_final_match,
            use_log_positions=t.type == TournamentType.LOG,
        )
        for error in report.errors:
            self.system_message.emit("warning", error)
        return report

    def start_next_match(self) -> Optional[MatchInfo]:
        """
        Resolve AI-only matches, then return the next match to play.

        Returns:
            The current match, or None if the tournament is over
        """
        t = self.tournament
        if not t.is_active or t.done:
            return None

        self.resolve_ai_matches(include_final_match=True)
        if t.done:
            self.save()
            return None

        self.update_match_home_teams()
        self.set_field()
        self.save()
        return t.current_match

    # ============ Home Team and Field ============

    def update_match_home_teams(self) -> None:
        """Set the home team of every match from the tournament's field select sequence."""
        t = self.tournament
        settings = self._settings
        if settings is None:
            return
        sequence = settings.field_select_sequence

        # Per human player slot: home in its previous match, matches played
        last_home = [False] * MAX_PLAYER_TEAMS
        played = [0] * MAX_PLAYER_TEAMS

        for index, match in enumerate(t.match_infos):
            if index == t.final_match_index or not match.has_teams:
                match.home_team = -1
            elif sequence == FieldSelectSequence.ALTERNATE_HOME_AWAY:
                match.home_team = self._alternate_home_team(index, match, last_home, played)
            elif sequence == FieldSelectSequence.HOME_ONLY:
                if match.is_player[0] and match.is_player[1]:
                    match.home_team = random.Random(f"{t.random_seed}-home-{index}").randrange(2)
                elif match.is_player[1]:
                    match.home_team = 1
                else:
                    match.home_team = 0
            else:
                # Away only and random: neither team plays at home
                match.home_team = -1

    @staticmethod
    def _alternate_home_team(index: int, match: MatchInfo, last_home: list[bool], played: list[int]) -> int:
        slots = {}
        for slot in (0, 1):
            player = match.human_index[slot]
            if 0 <= player < MAX_PLAYER_TEAMS:
                slots[player] = slot

        if len(slots) == 2:
            # Two humans: the one with fewer matches decides, by match index on a tie
            if played[0] == played[1]:
                player = 0 if index % 2 == 0 else 1
            else:
                player = 1 if played[0] > played[1] else 0
            slot = slots[player]
            home = 1 - slot if last_home[player] else slot
            for p, s in slots.items():
                last_home[p] = home == s
                played[p] += 1
            return home

        if not slots:
            # AI only
            return 0

        player, slot = next(iter(slots.items()))
        home = 1 - slot if last_home[player] else slot
        last_home[player] = home == slot
        played[player] += 1
        return home

    def set_field(self) -> Optional[str]:
        """
        Choose the field for the current match.

        Returns:
            The field id, or None if the field catalog has nothing to offer
        """
        t = self.tournament
        match = t.current_match
        settings = self._settings
        field = None

        if match is not None and match.has_teams:
            teams = list(match.team_ids)
            if t.is_final_match:
                field = self.field_catalog.get_random_field(exclude_team_ids=teams)
            elif match.home_team in (0, 1):
                field = self.field_catalog.get_home_field(teams[match.home_team])
            elif settings is not None and settings.field_select_sequence == FieldSelectSequence.AWAY_ONLY:
                field = self.field_catalog.get_random_field(exclude_team_ids=teams)

        if field is None:
            field = self.field_catalog.get_random_field()
        if field is None:
            log.warning("No field available for match %d", t.current_match_index)
            self._field_id = None
            return None

        self._field_id = field.id
        return self._field_id

    @property
    def field_id(self) -> Optional[str]:
        """Field of the current match."""
        if self._field_id is None and self.tournament.is_active:
            self.set_field()
        return self._field_id

    # ============ Standings ============

    def _init_team_stats(self) -> None:
        """Create every team's stats; AI levels are rolled from the tournament seed."""
        t = self.tournament
        settings = self._settings
        max_ai = settings.max_ai_difficulty if settings else 0
        skill_rng = random.Random(t.random_seed)

        self._stats = {}
        for team_id in t.team_ids:
            ai = min(skill_rng.randint(0, max_ai), t.difficulty)
            self._stats[team_id] = TeamStats(
                team_id=team_id,
                ai=ai,
                human_index=t.get_player_team_index(team_id),
            )

    def _recompute_standings(self) -> None:
        t = self.tournament
        if not self._has_log:
            return
        # Same counted matches, same tie-breaks: a reloaded tournament shows the same log
        counted = min(t.current_match_index, t.final_match_index)
        rng = random.Random(f"{t.random_seed}-log-{counted}")
        self._log = self._standings.recompute(
            t.match_infos,
            t.current_match_index,
            t.team_ids,
            self._stats,
            rng,
            final_match_index=t.final_match_index,
        )
        self.standings_updated.emit()

    @property
    def log(self) -> list[TeamStats]:
        """The standings, best team first. Empty for bracket tournaments."""
        return list(self._log)

    def get_team_stats(self, team_id: str) -> Optional[TeamStats]:
        return self._stats.get(team_id)

    # ============ Persistence ============

    def save(self) -> None:
        """Save the active tournament to the store, if there is one."""
        if self.store is None or not self.tournament.is_active:
            return
        self.store.save(self.tournament)

    def load(self) -> bool:
        """
        Restore the saved tournament.

        Returns:
            True if a tournament was loaded

        Raises:
            InvalidConfiguration: If the saved tournament no longer matches its definition
        """
        if self.store is None:
            return False
        snapshot = self.store.load()
        if snapshot is None:
            return False

        self.end_tournament()
        try:
            settings = self.registry.get(snapshot.tournament_id)
            custom = self._custom_match_maker(settings)
            derived = custom.derive_settings(settings) if custom else derive_settings(settings, self.rules)
            if snapshot.type != derived.type:
                raise InvalidConfiguration(
                    f"Saved tournament '{snapshot.tournament_id}' is {snapshot.type.value}, "
                    f"its definition is {derived.type.value}"
                )
            if len(snapshot.match_infos) != derived.max_matches:
                raise InvalidConfiguration(
                    f"Saved tournament '{snapshot.tournament_id}' has {len(snapshot.match_infos)} "
                    f"matches, expected {derived.max_matches}"
                )
        except TournamentError:
            self.end_tournament()
            raise

        t = self.tournament
        t.tournament_id = settings.id
        t.type = derived.type
        t.team_ids = list(snapshot.team_ids)
        t.player_team_ids = list(snapshot.player_team_ids)
        t.match_infos = snapshot.match_infos
        t.groups = snapshot.groups
        t.current_match_index = snapshot.current_match_index
        t.done = snapshot.done
        t.random_seed = snapshot.random_seed
        t.difficulty = snapshot.difficulty

        self._derived = derived
        self._rng = random.Random(f"{t.random_seed}-{t.current_match_index}")

        log.info("Loaded tournament '%s' at match %d", t.tournament_id, t.current_match_index)
        self._on_new_or_loaded(was_loaded=True)
        # end_tournament() cleared the store
        self.save()
        return True

    def _on_new_or_loaded(self, was_loaded: bool) -> None:
        """Re-derive everything that is not stored, then fast-forward AI matches."""
        t = self.tournament
        tournament_id = t.tournament_id or ""
        self.tournament_start_or_load.emit(tournament_id, was_loaded)

        for index, match in enumerate(t.match_infos):
            match.needs_winner = self._is_bracket or index == t.final_match_index
            mark_players(match, t.player_team_ids)
        custom = self._custom_match_maker_for_active()
        if custom:
            custom.on_new_or_loaded(t)

        self._init_team_stats()
        self.update_match_home_teams()
        self._recompute_standings()

        if t.done:
            final = t.final_match
            if final is not None and final.is_done:
                self._record_final_result(final)
        else:
            self.resolve_ai_matches(include_final_match=True)
            if t.is_final_match:
                self.setup_final_match()
        self.set_field()

        self.tournament_started_or_loaded.emit(tournament_id, was_loaded)

    # ============ Accessors ============

    def get_match_info(self, index: int = -1) -> Optional[MatchInfo]:
        """A match by index, the current match for -1. None if out of range."""
        if index < 0:
            return self.tournament.current_match
        return self.tournament.get_match(index)

    def get_final_match_info(self) -> Optional[MatchInfo]:
        return self.tournament.final_match

    @property
    def derived_settings(self) -> Optional[DerivedSettings]:
        return self._derived

    @property
    def is_final_match(self) -> bool:
        return self.tournament.is_active and self.tournament.is_final_match

    @property
    def is_tournament_done(self) -> bool:
        return self.tournament.is_active and self.tournament.done

    @property
    def is_tournament_active(self) -> bool:
        return self.tournament.is_active

    @property
    def win_team_id(self) -> Optional[str]:
        return self.tournament.win_team_id

    @property
    def lose_team_id(self) -> Optional[str]:
        return self.tournament.lose_team_id

    @property
    def win_score(self) -> int:
        return self.tournament.win_score

    @property
    def lose_score(self) -> int:
        return self.tournament.lose_score

    def is_player_team(self, team_id: Optional[str]) -> bool:
        return self.tournament.is_player_team(team_id)

    def get_player_team_index(self, team_id: Optional[str]) -> int:
        return self.tournament.get_player_team_index(team_id)

    @property
    def current_match_day(self) -> int:
        """Match day of the current match; the last day once the tournament is done."""
        t = self.tournament
        if not t.match_infos:
            return -1
        match = t.current_match
        if match is None:
            return self.match_day_count - 1
        return match.match_day

    @property
    def match_day_count(self) -> int:
        t = self.tournament
        if not t.match_infos:
            return 0
        return max(m.match_day for m in t.match_infos) + 1

    # ============ Helpers ============

    @property
    def _settings(self) -> Optional[TournamentSettings]:
        return self._derived.settings if self._derived else None

    @property
    def _is_bracket(self) -> bool:
        return bool(self._derived and self._derived.winner_next_match)

    @property
    def _has_log(self) -> bool:
        return self._derived is not None and not self._is_bracket

    def _validate_players(self, player_team_ids: list[str]) -> list[str]:
        players = [pid for pid in player_team_ids if pid]
        if len(players) > MAX_PLAYER_TEAMS:
            raise InvalidConfiguration(
                f"At most {MAX_PLAYER_TEAMS} human teams can play, got {len(players)}"
            )
        if len(set(players)) != len(players):
            raise InvalidConfiguration("Human teams must be different teams")
        return players

    def _custom_match_maker(self, settings: TournamentSettings) -> Optional[CustomMatchMaker]:
        if settings.type != TournamentType.CUSTOM:
            return None
        maker = self.custom_match_makers.get(settings.id)
        if maker is None:
            raise InvalidConfiguration(f"Custom tournament '{settings.id}' has no match maker registered")
        return maker

    def _custom_match_maker_for_active(self) -> Optional[CustomMatchMaker]:
        if self.tournament.type != TournamentType.CUSTOM:
            return None
        return self.custom_match_makers.get(self.tournament.tournament_id)
