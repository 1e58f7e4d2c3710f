"""
Game economy summary: team budgets across all leagues.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from .store import RaceStore


@dataclass
class EconomyReport:
    """Budgets of every non-academy team."""
    teams: List[Tuple[str, bool, int]] = field(default_factory=list)  # (name, is_player, budget)

    @property
    def total_budget(self) -> int:
        return sum(budget for _, _, budget in self.teams)

    @property
    def average_budget(self) -> float:
        if not self.teams:
            return 0.0
        return self.total_budget / len(self.teams)

    @property
    def player_teams(self) -> List[Tuple[str, int]]:
        return [(name, budget) for name, is_player, budget in self.teams if is_player]

    def format(self) -> str:
        lines = [f"--- ALL TEAMS ({len(self.teams)}) ---"]
        for name, is_player, budget in self.teams:
            tag = "PLAYER" if is_player else "AI"
            lines.append(f"[{tag}] {name:<25} | Budget: ${budget:,}")
        lines.append(f"Avg Budget (no academies): ${round(self.average_budget):,}")

        players = self.player_teams
        if players:
            lines.append("--- PLAYER TEAMS ---")
            for name, budget in players:
                lines.append(f"{name:<25} | Budget: ${budget:,}")
        return "\n".join(lines)


def build_economy_report(store: RaceStore) -> EconomyReport:
    """Collect budgets of every team reachable from a league, skipping academies."""
    report = EconomyReport()
    seen = set()
    for team in store.all_teams():
        if team["id"] in seen or team.get("is_academy"):
            continue
        seen.add(team["id"])
        report.teams.append((
            team.get("name", team["id"]),
            bool(team.get("is_player", not team.get("is_bot", False))),
            int(team.get("budget", 0)),
        ))
    return report
