"""
Tests for the key-value stores and tournament persistence.
"""

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from engine.match_info import GroupInfo, MatchInfo
from engine.tournament import Tournament
from models import Base
from models.tournament import TournamentType
from services.key_value_store import MemoryKeyValueStore, SqlKeyValueStore
from services.persistence import KeyValueStore, TournamentStore


@pytest.fixture
def session_factory():
    """In-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def kv(request, session_factory):
    if request.param == "memory":
        return MemoryKeyValueStore()
    return SqlKeyValueStore(session_factory)


def make_tournament() -> Tournament:
    return Tournament(
        tournament_id="cup",
        type=TournamentType.SINGLE_ELIMINATION,
        team_ids=["A", "B", "C", "D"],
        player_team_ids=["A"],
        match_infos=[
            MatchInfo(team_ids=["A", "C"], team_scores=[2, 1]),
            MatchInfo(team_ids=["B", "D"], team_scores=[0, 1]),
            MatchInfo(team_ids=["A", None], match_day=1),
        ],
        groups=[GroupInfo(team_ids=["A", "C", "B", "D"])],
        current_match_index=2,
        random_seed=12345,
        difficulty=2,
    )


class TestKeyValueStore:
    """Tests shared by the memory and SQL stores."""

    def test_implements_protocol(self, kv):
        assert isinstance(kv, KeyValueStore)

    def test_typed_values(self, kv):
        kv.set_string("name", "league")
        kv.set_int("count", 42)
        kv.set_bool("done", True)

        assert kv.get_string("name") == "league"
        assert kv.get_int("count") == 42
        assert kv.get_bool("done") is True

    def test_missing_key_returns_default(self, kv):
        assert kv.get_string("missing") is None
        assert kv.get_int("missing", -1) == -1
        assert kv.get_bool("missing") is False
        assert not kv.has_key("missing")

    def test_type_mismatch_returns_default(self, kv):
        kv.set_string("value", "7")

        assert kv.get_int("value", 0) == 0

    def test_overwrite(self, kv):
        kv.set_int("count", 1)
        kv.set_int("count", 2)

        assert kv.get_int("count") == 2

    def test_negative_int(self, kv):
        kv.set_int("score", -1)

        assert kv.get_int("score") == -1

    def test_delete_prefix(self, kv):
        kv.set_int("tnt_a", 1)
        kv.set_int("tnt_b", 2)
        kv.set_int("other", 3)

        assert kv.delete_prefix("tnt_") == 2
        assert kv.keys() == ["other"]

    def test_delete_prefix_treats_underscore_literally(self, kv):
        kv.set_int("tnt_a", 1)
        kv.set_int("tntxa", 2)

        kv.delete_prefix("tnt_")

        assert kv.keys() == ["tntxa"]


class TestTournamentStore:
    """Tests for saving and loading a tournament."""

    def test_keys(self, kv):
        store = TournamentStore(kv)

        store.save(make_tournament())

        assert kv.get_string("tnt_id") == "cup"
        assert kv.get_string("tnt_type") == "single_elimination"
        assert kv.get_int("tnt_match") == 2
        assert kv.get_int("tnt_rseed") == 12345
        assert kv.get_string("tnt_playerId_00") == "A"
        assert kv.get_string("tnt_teamId_03") == "D"
        assert kv.get_int("tnt_numMatches") == 3
        assert kv.get_string("tnt_match_001_teamId_01") == "D"
        assert kv.get_int("tnt_match_000_teamScore_00") == 2
        assert kv.get_int("tnt_match_002_matchDay") == 1
        assert kv.get_string("tnt_group_000_teamId_02") == "B"
        # Empty slots are not stored
        assert not kv.has_key("tnt_match_002_teamId_01")

    def test_round_trip(self, kv):
        store = TournamentStore(kv)
        tournament = make_tournament()

        store.save(tournament)
        snapshot = store.load()

        assert snapshot.tournament_id == "cup"
        assert snapshot.type == TournamentType.SINGLE_ELIMINATION
        assert not snapshot.done
        assert snapshot.current_match_index == 2
        assert snapshot.random_seed == 12345
        assert snapshot.difficulty == 2
        assert snapshot.player_team_ids == ["A"]
        assert snapshot.team_ids == ["A", "B", "C", "D"]
        assert [m.team_ids for m in snapshot.match_infos] == [["A", "C"], ["B", "D"], ["A", None]]
        assert [m.team_scores for m in snapshot.match_infos] == [[2, 1], [0, 1], [-1, -1]]
        assert [m.match_day for m in snapshot.match_infos] == [0, 0, 1]
        assert snapshot.groups[0].team_ids == ["A", "C", "B", "D"]

    def test_save_replaces_previous(self, kv):
        store = TournamentStore(kv)
        store.save(make_tournament())

        smaller = Tournament(tournament_id="league", type=TournamentType.LOG,
                             team_ids=["A", "B"], match_infos=[MatchInfo(team_ids=["A", "B"])])
        store.save(smaller)

        assert not kv.has_key("tnt_match_002_matchDay")
        assert not kv.has_key("tnt_group_000_numTeams")
        assert store.load().tournament_id == "league"

    def test_inactive_tournament_clears(self, kv):
        store = TournamentStore(kv)
        store.save(make_tournament())

        store.save(Tournament())

        assert not store.has_saved_tournament()

    def test_clear_keeps_other_keys(self, kv):
        store = TournamentStore(kv)
        kv.set_string("settings_volume", "7")
        store.save(make_tournament())

        store.clear()

        assert store.load() is None
        assert kv.get_string("settings_volume") == "7"

    def test_nothing_saved(self, kv):
        assert TournamentStore(kv).load() is None

    def test_unknown_type(self, kv):
        kv.set_string("tnt_id", "cup")
        kv.set_string("tnt_type", "ladder")

        assert TournamentStore(kv).load() is None

    def test_missing_team(self, kv):
        store = TournamentStore(kv)
        store.save(make_tournament())
        kv.delete_prefix("tnt_teamId_02")

        assert store.load() is None

    def test_failed_save_keeps_previous(self, kv):
        store = TournamentStore(kv)
        store.save(Tournament(tournament_id="league", type=TournamentType.LOG,
                              team_ids=["A", "B"], match_infos=[MatchInfo(team_ids=["A", "B"])]))
        broken = make_tournament()
        broken.match_infos[1].team_scores = None

        with pytest.raises(TypeError):
            store.save(broken)

        snapshot = store.load()
        assert snapshot.tournament_id == "league"
        assert snapshot.team_ids == ["A", "B"]
        assert not kv.has_key("tnt_match_001_matchDay")
        assert not kv.has_key("tnt_group_000_numTeams")


class TestSqlTransactions:
    """Tests for grouping SQL writes into one transaction."""

    def test_save_commits_once(self, session_factory):
        commits = []
        event.listen(session_factory.kw["bind"], "commit", lambda conn: commits.append(conn))

        TournamentStore(SqlKeyValueStore(session_factory)).save(make_tournament())

        assert len(commits) == 1

    def test_writes_visible_inside_transaction(self, session_factory):
        kv = SqlKeyValueStore(session_factory)

        with kv.transaction():
            kv.set_int("count", 1)
            kv.set_int("count", 2)
            assert kv.get_int("count") == 2

        assert kv.get_int("count") == 2

    def test_rollback(self, session_factory):
        kv = SqlKeyValueStore(session_factory)
        kv.set_string("name", "league")

        with pytest.raises(RuntimeError):
            with kv.transaction():
                kv.delete_prefix("na")
                kv.set_string("other", "cup")
                raise RuntimeError("interrupted")

        assert kv.get_string("name") == "league"
        assert not kv.has_key("other")
