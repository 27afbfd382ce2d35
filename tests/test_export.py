"""
Tests for tournament export.
"""

import csv

from engine.match_info import MatchInfo
from engine.standings import TeamStats
from engine.tournament import Tournament
from models.tournament import TournamentType
from services.export import SCHEDULE_HEADER, STANDINGS_HEADER, TournamentExporter, export_all


NAMES = {"A": "Lions", "B": "Tigers", "C": "Eagles", "D": "Sharks"}


def make_tournament(done: bool = False) -> Tournament:
    final = MatchInfo(team_ids=["A", "C"], match_day=3, needs_winner=True)
    if done:
        final.team_scores = [2, 0]
    t = Tournament(
        tournament_id="league",
        type=TournamentType.LOG,
        team_ids=["A", "B", "C", "D"],
        player_team_ids=["A"],
        match_infos=[
            MatchInfo(team_ids=["A", "B"], team_scores=[3, 1]),
            MatchInfo(team_ids=["C", "D"], team_scores=[1, 1]),
            MatchInfo(team_ids=["A", "C"], match_day=1),
            final,
        ],
        current_match_index=4 if done else 2,
        done=done,
    )
    if done:
        t.win_team_id, t.lose_team_id, t.win_score, t.lose_score = "A", "C", 2, 0
    return t


def make_standings() -> list[TeamStats]:
    return [
        TeamStats("A", points=3, goal_difference=2, goals_for=3, goals_against=1, played=1, won=1),
        TeamStats("C", points=1, goals_for=1, goals_against=1, played=1, drawn=1),
        TeamStats("D", points=1, goals_for=1, goals_against=1, played=1, drawn=1),
        TeamStats("B", goal_difference=-2, goals_for=1, goals_against=3, played=1, lost=1),
    ]


class TestRows:
    """Tests for the table rows."""

    def setup_method(self):
        self.exporter = TournamentExporter(NAMES.get)

    def test_schedule_rows(self):
        rows = self.exporter.schedule_rows(make_tournament())

        assert len(rows) == 4
        assert rows[0] == ["1", "1", "Lions", "Tigers", "3", "1", "played"]
        assert rows[2][-1] == "next"
        assert rows[3][-1] == "final (scheduled)"
        assert rows[3][4:6] == ["", ""]
        assert all(len(row) == len(SCHEDULE_HEADER) for row in rows)

    def test_empty_slots(self):
        tournament = make_tournament()
        tournament.match_infos[-1] = MatchInfo(needs_winner=True)

        rows = TournamentExporter().schedule_rows(tournament)

        assert rows[-1][2:4] == ["TBD", "TBD"]

    def test_standings_rows(self):
        rows = self.exporter.standings_rows(make_standings())

        assert rows[0] == ["1", "Lions", "1", "1", "0", "0", "3", "1", "+2", "3"]
        assert rows[3][8] == "-2"
        assert rows[1][8] == "+0"
        assert all(len(row) == len(STANDINGS_HEADER) for row in rows)


class TestFiles:
    """Tests for writing export files."""

    def setup_method(self):
        self.exporter = TournamentExporter(NAMES.get)

    def test_schedule_csv(self, tmp_path):
        path = tmp_path / "schedule.csv"

        assert self.exporter.export_schedule_csv(make_tournament(), path)
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0] == SCHEDULE_HEADER
        assert len(rows) == 5

    def test_standings_csv(self, tmp_path):
        path = tmp_path / "standings.csv"

        assert self.exporter.export_standings_csv(make_standings(), path)
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0] == STANDINGS_HEADER
        assert rows[1][1] == "Lions"

    def test_csv_to_missing_directory(self, tmp_path):
        path = tmp_path / "missing" / "schedule.csv"

        assert not self.exporter.export_schedule_csv(make_tournament(), path)

    def test_pdf(self, tmp_path):
        path = tmp_path / "report.pdf"

        assert self.exporter.export_pdf(make_tournament(done=True), make_standings(), path,
                                        title="Summer League")
        assert path.read_bytes().startswith(b"%PDF")

    def test_export_all(self, tmp_path):
        written = export_all(self.exporter, make_tournament(done=True), make_standings(), tmp_path / "out")

        assert [p.name for p in written] == [
            "league_schedule.csv", "league_standings.csv", "league_report.pdf",
        ]
        assert all(p.exists() for p in written)

    def test_export_all_without_standings(self, tmp_path):
        written = export_all(self.exporter, make_tournament(), [], tmp_path)

        assert [p.name for p in written] == ["league_schedule.csv", "league_report.pdf"]
