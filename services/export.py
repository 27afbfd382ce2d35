"""
Tournament Export

Write a tournament's schedule and standings as CSV for analysis, or as a
printable PDF report.
"""

import csv
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from engine.standings import TeamStats
from engine.tournament import Tournament
from services.logger import get_logger


log = get_logger("services.export")

SCHEDULE_HEADER = ["Match", "Day", "Home", "Away", "Home Score", "Away Score", "Status"]
STANDINGS_HEADER = ["Pos", "Team", "P", "W", "D", "L", "GF", "GA", "GD", "Pts"]


class TournamentExporter:
    """
    Export a tournament's schedule and standings.

    Usage:
        exporter = TournamentExporter(team_name=lambda tid: names[tid])
        exporter.export_schedule_csv(controller.tournament, "schedule.csv")
        exporter.export_pdf(controller.tournament, controller.log, "report.pdf")
    """

    def __init__(self, team_name: Optional[Callable[[str], str]] = None):
        self._team_name = team_name or (lambda team_id: team_id)
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self) -> None:
        """Set up custom paragraph styles."""
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=22,
            alignment=TA_CENTER,
            spaceAfter=16,
        ))

        self.styles.add(ParagraphStyle(
            name='ReportSubtitle',
            parent=self.styles['Normal'],
            fontSize=12,
            alignment=TA_CENTER,
            spaceAfter=10,
        ))

        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=14,
            spaceBefore=15,
            spaceAfter=10,
        ))

    def _name(self, team_id: Optional[str]) -> str:
        return self._team_name(team_id) if team_id else "TBD"

    # ============ Rows ============

    def schedule_rows(self, tournament: Tournament) -> list[list[str]]:
        """One row per match, in play order."""
        rows = []
        for index, match in enumerate(tournament.match_infos):
            if match.is_done:
                status = "played"
                scores = [str(match.team_scores[0]), str(match.team_scores[1])]
            else:
                status = "next" if index == tournament.current_match_index else "scheduled"
                scores = ["", ""]
            if index == tournament.final_match_index:
                status = f"final ({status})"
            rows.append([
                str(index + 1),
                str(match.match_day + 1),
                self._name(match.team_ids[0]),
                self._name(match.team_ids[1]),
                *scores,
                status,
            ])
        return rows

    def standings_rows(self, standings: list[TeamStats]) -> list[list[str]]:
        """One row per team, best team first."""
        rows = []
        for position, team in enumerate(standings, start=1):
            rows.append([
                str(position),
                self._name(team.team_id),
                str(team.played),
                str(team.won),
                str(team.drawn),
                str(team.lost),
                str(team.goals_for),
                str(team.goals_against),
                f"{team.goal_difference:+d}",
                str(team.points),
            ])
        return rows

    # ============ CSV ============

    def export_schedule_csv(self, tournament: Tournament, filepath) -> bool:
        """
        Export the schedule as CSV.

        Returns:
            True if export successful, False otherwise
        """
        try:
            with open(filepath, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                writer.writerow(SCHEDULE_HEADER)
                writer.writerows(self.schedule_rows(tournament))
            return True
        except OSError as e:
            log.error("CSV export error: %s", e)
            return False

    def export_standings_csv(self, standings: list[TeamStats], filepath) -> bool:
        """
        Export the standings as CSV.

        Returns:
            True if export successful, False otherwise
        """
        try:
            with open(filepath, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                writer.writerow(STANDINGS_HEADER)
                writer.writerows(self.standings_rows(standings))
            return True
        except OSError as e:
            log.error("CSV export error: %s", e)
            return False

    # ============ PDF ============

    def export_pdf(
        self,
        tournament: Tournament,
        standings: list[TeamStats],
        filepath,
        title: Optional[str] = None,
    ) -> bool:
        """
        Export a PDF report with the result, standings and schedule.

        Args:
            tournament: The tournament
            standings: The log; skipped if empty (bracket tournaments)
            filepath: Output file path
            title: Report title, defaults to the tournament id

        Returns:
            True if export successful, False otherwise
        """
        doc = SimpleDocTemplate(
            str(filepath),
            pagesize=A4,
            rightMargin=1*cm,
            leftMargin=1*cm,
            topMargin=1*cm,
            bottomMargin=1*cm,
        )

        elements = []
        elements.append(Paragraph(title or tournament.tournament_id or "Tournament",
                                  self.styles['ReportTitle']))
        elements.append(Paragraph(
            f"{tournament.type.value.replace('_', ' ').title()} - "
            f"{datetime.now().strftime('%Y-%m-%d')}",
            self.styles['ReportSubtitle']
        ))

        if tournament.done and tournament.win_team_id:
            elements.append(Paragraph(
                f"Winner: {self._name(tournament.win_team_id)} "
                f"{tournament.win_score} - {tournament.lose_score} "
                f"{self._name(tournament.lose_team_id)}",
                self.styles['ReportSubtitle']
            ))

        elements.append(Spacer(1, 0.5*cm))

        if standings:
            elements.append(Paragraph("Standings", self.styles['SectionHeader']))
            elements.append(self._table(
                [STANDINGS_HEADER] + self.standings_rows(standings),
                [1.2*cm, 5*cm] + [1.4*cm] * 8,
            ))
            elements.append(Spacer(1, 0.5*cm))

        elements.append(Paragraph("Schedule", self.styles['SectionHeader']))
        elements.append(self._table(
            [SCHEDULE_HEADER] + self.schedule_rows(tournament),
            [1.5*cm, 1.2*cm, 4.5*cm, 4.5*cm, 2*cm, 2*cm, 3*cm],
        ))

        try:
            doc.build(elements)
            return True
        except OSError as e:
            log.error("PDF export error: %s", e)
            return False

    @staticmethod
    def _table(data: list[list[str]], col_widths: list[float]) -> Table:
        table = Table(data, colWidths=col_widths, repeatRows=1)
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
            ('TOPPADDING', (0, 0), (-1, -1), 5),
        ]))
        return table


def export_all(
    exporter: TournamentExporter,
    tournament: Tournament,
    standings: list[TeamStats],
    directory: Path,
) -> list[Path]:
    """Write schedule.csv, standings.csv and report.pdf into a directory."""
    directory.mkdir(parents=True, exist_ok=True)
    written = []
    prefix = tournament.tournament_id or "tournament"

    schedule_path = directory / f"{prefix}_schedule.csv"
    if exporter.export_schedule_csv(tournament, schedule_path):
        written.append(schedule_path)

    if standings:
        standings_path = directory / f"{prefix}_standings.csv"
        if exporter.export_standings_csv(standings, standings_path):
            written.append(standings_path)

    report_path = directory / f"{prefix}_report.pdf"
    if exporter.export_pdf(tournament, standings, report_path):
        written.append(report_path)
    return written
