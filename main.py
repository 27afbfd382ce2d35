"""
Matchday - Soccer tournament engine

Command-line entry point.

Usage:
    matchday tournaments
    matchday schedule league --player lions --seed 7
    matchday simulate cup --player lions --player tigers --seed 7
    matchday export league --seed 7 --output exports/
    matchday start world_cup --player lions --database matchday.db
    matchday status --database matchday.db
    matchday result lions 2 tigers 1 --database matchday.db
"""

import random
import sys
from pathlib import Path
from typing import Optional

import typer
from PySide6.QtCore import QCoreApplication
from rich.console import Console
from rich.table import Table

from config import APP_NAME, APP_VERSION, MATCH_SETTINGS, MatchSettings
from engine.ai_resolver import AiResolver
from engine.controller import TournamentController
from engine.errors import TournamentError
from engine.standings import TeamStats
from engine.world_cup import WorldCupMatchMaker
from models.tournament import TournamentType
from services.catalog import demo_team_records
from services.export import TournamentExporter, export_all
from services.logger import configure_logging
from services.tournament_config import load_registry


app = typer.Typer(help=f"{APP_NAME} tournament engine")
console = Console()

_TEAM_NAMES = {t.id: t.name for t in demo_team_records()}
_qt_app: Optional[QCoreApplication] = None


def _team_name(team_id: Optional[str]) -> str:
    if not team_id:
        return "TBD"
    return _TEAM_NAMES.get(team_id, team_id)


@app.callback()
def _callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="QUIET | NORMAL | VERBOSE | DEBUG"
    ),
) -> None:
    """Matchday - schedule, simulate and export soccer tournaments."""
    try:
        configure_logging(log_level)
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)

    # Controller signals need an application object
    global _qt_app
    _qt_app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    QCoreApplication.setApplicationName(APP_NAME)
    QCoreApplication.setApplicationVersion(APP_VERSION)


def _start(
    tournament: str,
    players: Optional[list[str]],
    seed: Optional[int],
    difficulty: Optional[int],
) -> TournamentController:
    from app import create_memory_controller

    match_settings = MATCH_SETTINGS
    if difficulty is not None:
        match_settings = MatchSettings(difficulty=difficulty, max_difficulty=MATCH_SETTINGS.max_difficulty)

    controller = create_memory_controller(seed, load_registry(), match_settings)
    try:
        controller.start_new_tournament(tournament, players or [])
    except TournamentError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)
    return controller


def _play_to_end(controller: TournamentController, seed: Optional[int]) -> None:
    """Play the human matches with the AI resolver until the tournament is done."""
    stand_in = AiResolver(random.Random(seed))
    t = controller.tournament
    while True:
        match = controller.start_next_match()
        if match is None:
            break
        stats = [controller.get_team_stats(tid) for tid in match.team_ids]
        score0, score1 = stand_in.pick_result(match, stats[0], stats[1],
                                              use_log_positions=t.type == TournamentType.LOG)
        console.print(
            f"[cyan]Match {t.current_match_index + 1}[/cyan]: "
            f"{_team_name(match.team_ids[0])} {score0} - {score1} {_team_name(match.team_ids[1])}"
        )
        controller.end_match(match.team_ids[0], score0, match.team_ids[1], score1)


def _schedule_table(controller: TournamentController) -> Table:
    t = controller.tournament
    table = Table(title=f"{t.tournament_id} schedule")
    table.add_column("#", justify="right")
    table.add_column("Day", justify="right")
    table.add_column("Home")
    table.add_column("Away")
    table.add_column("Score", justify="center")
    for index, match in enumerate(t.match_infos):
        score = f"{match.team_scores[0]} - {match.team_scores[1]}" if match.is_done else ""
        home = _team_name(match.team_ids[0])
        away = _team_name(match.team_ids[1])
        if match.is_player[0]:
            home = f"[bold]{home}[/bold]"
        if match.is_player[1]:
            away = f"[bold]{away}[/bold]"
        table.add_row(str(index + 1), str(match.match_day + 1), home, away, score)
    return table


def _standings_table(controller: TournamentController) -> Table:
    return _log_table("Standings", controller.log)


def _log_table(title: str, teams: list[TeamStats]) -> Table:
    table = Table(title=title)
    for column in ("Pos", "Team", "P", "W", "D", "L", "GF", "GA", "GD", "Pts"):
        table.add_column(column, justify="left" if column == "Team" else "right")
    for position, team in enumerate(teams, start=1):
        table.add_row(
            str(position), _team_name(team.team_id), str(team.played), str(team.won),
            str(team.drawn), str(team.lost), str(team.goals_for), str(team.goals_against),
            f"{team.goal_difference:+d}", str(team.points),
        )
    return table


def _group_tables(controller: TournamentController) -> list[Table]:
    """Group tables of a World Cup, empty for every other tournament."""
    t = controller.tournament
    maker = controller.custom_match_makers.get(t.tournament_id or "")
    if not isinstance(maker, WorldCupMatchMaker):
        return []
    return [
        _log_table(f"Group {chr(ord('A') + g)}", maker.group_standings(t, g))
        for g in range(len(t.groups))
    ]


def _open_app(database: Optional[Path], seed: Optional[int] = None):
    from app import MatchdayApp

    return MatchdayApp(registry=load_registry(), database=database, seed=seed)


def _print_next_match(controller: TournamentController) -> None:
    if controller.is_tournament_done:
        console.print(
            f"[green]Winner: {_team_name(controller.win_team_id)}[/green] "
            f"{controller.win_score} - {controller.lose_score} {_team_name(controller.lose_team_id)}"
        )
        return
    t = controller.tournament
    match = t.current_match
    console.print(
        f"[cyan]Next match {t.current_match_index + 1}[/cyan] (day {match.match_day + 1}): "
        f"{_team_name(match.team_ids[0])} ({match.team_ids[0]}) vs "
        f"{_team_name(match.team_ids[1])} ({match.team_ids[1]}), field {controller.field_id}"
    )


@app.command()
def tournaments() -> None:
    """List the tournament definitions."""
    table = Table(title="Tournaments")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Teams", justify="right")
    table.add_column("Legs", justify="right")
    for settings in load_registry():
        table.add_row(settings.id, settings.name, settings.type.value,
                      str(settings.max_teams), str(settings.num_face_each_other))
    console.print(table)


@app.command()
def schedule(
    tournament: str = typer.Argument(..., help="Tournament id"),
    player: Optional[list[str]] = typer.Option(None, "--player", "-p", help="Human team id (up to 2)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
) -> None:
    """Generate a schedule and show how it was built."""
    controller = _start(tournament, player, seed, None)
    console.print(_schedule_table(controller))

    report = controller.schedule_report
    if report is not None:
        console.print(f"Seed: {controller.tournament.random_seed}")
        if report.leg_attempts:
            console.print(f"Leg attempts: {report.leg_attempts}, "
                          f"regenerations: {report.regenerations}, "
                          f"search steps: {report.search_steps}")
            console.print(f"Round start swaps: {report.first_match_swaps}, "
                          f"column swaps: {report.column_swaps}")
        else:
            console.print(f"Humans in same group: {report.humans_in_same_group}, "
                          f"same match: {report.humans_in_same_match}")


@app.command()
def simulate(
    tournament: str = typer.Argument(..., help="Tournament id"),
    player: Optional[list[str]] = typer.Option(None, "--player", "-p", help="Human team id (up to 2)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    difficulty: Optional[int] = typer.Option(None, "--difficulty", help="AI difficulty"),
) -> None:
    """Play a tournament to the end, human matches included."""
    controller = _start(tournament, player, seed, difficulty)
    _play_to_end(controller, seed)

    console.print(_schedule_table(controller))
    for table in _group_tables(controller):
        console.print(table)
    if controller.log:
        console.print(_standings_table(controller))
    console.print(
        f"[green]Winner: {_team_name(controller.win_team_id)}[/green] "
        f"{controller.win_score} - {controller.lose_score} {_team_name(controller.lose_team_id)}"
    )


@app.command()
def export(
    tournament: str = typer.Argument(..., help="Tournament id"),
    player: Optional[list[str]] = typer.Option(None, "--player", "-p", help="Human team id (up to 2)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    output: Path = typer.Option(Path("exports"), "--output", "-o", help="Output directory"),
) -> None:
    """Simulate a tournament and export its schedule and standings."""
    controller = _start(tournament, player, seed, None)
    _play_to_end(controller, seed)

    written = export_all(TournamentExporter(_team_name), controller.tournament,
                         controller.log, output)
    for path in written:
        console.print(f"Wrote {path}")
    if not written:
        console.print("[red]Error: nothing was exported[/red]")
        raise typer.Exit(code=1)


@app.command()
def start(
    tournament: str = typer.Argument(..., help="Tournament id"),
    player: Optional[list[str]] = typer.Option(None, "--player", "-p", help="Human team id (up to 2)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    database: Optional[Path] = typer.Option(None, "--database", help="SQLite file, defaults to the user data directory"),
) -> None:
    """Start a saved tournament and play the AI matches up to the first human match."""
    matchday = _open_app(database, seed)
    try:
        matchday.start_tournament(tournament, player or [])
        _print_next_match(matchday.controller)
    except TournamentError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)
    finally:
        matchday.close()


@app.command()
def status(
    database: Optional[Path] = typer.Option(None, "--database", help="SQLite file, defaults to the user data directory"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Also export to this directory"),
) -> None:
    """Show the saved tournament and its next match."""
    matchday = _open_app(database)
    try:
        if not matchday.resume():
            console.print("No saved tournament")
            return
        controller = matchday.controller
        console.print(_schedule_table(controller))
        for table in _group_tables(controller):
            console.print(table)
        if controller.log:
            console.print(_standings_table(controller))
        _print_next_match(controller)
        if output is not None:
            for path in matchday.export(output):
                console.print(f"Wrote {path}")
    except TournamentError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)
    finally:
        matchday.close()


@app.command()
def result(
    team_a: str = typer.Argument(..., help="Team id"),
    score_a: int = typer.Argument(..., help="Goals of team_a"),
    team_b: str = typer.Argument(..., help="Team id"),
    score_b: int = typer.Argument(..., help="Goals of team_b"),
    forfeit: Optional[str] = typer.Option(None, "--forfeit", help="Team id that forfeited"),
    database: Optional[Path] = typer.Option(None, "--database", help="SQLite file, defaults to the user data directory"),
) -> None:
    """Record the result of the saved tournament's current match."""
    matchday = _open_app(database)
    try:
        if not matchday.resume():
            console.print("[red]Error: no saved tournament[/red]")
            raise typer.Exit(code=1)
        matchday.report_result(team_a, score_a, team_b, score_b, forfeit)
        _print_next_match(matchday.controller)
    except TournamentError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(code=1)
    finally:
        matchday.close()


def main() -> None:
    """Main entry point for Matchday."""
    app()


if __name__ == "__main__":
    main()
