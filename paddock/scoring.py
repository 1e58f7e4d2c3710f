"""
Points, podiums and prize money from a race classification.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .race import RaceResult

POINT_SYSTEM = (25, 18, 15, 12, 10, 8, 6, 4, 2, 1)


@dataclass
class DriverScore:
    """One driver's haul from a race."""
    driver_id: str
    team_id: str
    position: int
    points: int
    is_dnf: bool
    is_win: bool
    is_podium: bool


@dataclass
class TeamScore:
    """One team's haul from a race."""
    team_id: str
    points: int = 0
    wins: int = 0
    podiums: int = 0
    prize_money: int = 0


@dataclass
class RaceScore:
    """Scores for every driver and team in a race."""
    drivers: List[DriverScore] = field(default_factory=list)
    teams: Dict[str, TeamScore] = field(default_factory=dict)

    def winner(self) -> Optional[DriverScore]:
        """The classified winner, or None if the leader retired."""
        if self.drivers and self.drivers[0].is_win:
            return self.drivers[0]
        return None


def points_for_rank(rank: int, is_dnf: bool = False) -> int:
    """Points for a 0-based rank."""
    if is_dnf or rank < 0 or rank >= len(POINT_SYSTEM):
        return 0
    return POINT_SYSTEM[rank]


def prize_money(points: int, base_prize: int, point_value: int) -> int:
    return base_prize + points * point_value


def score_race(
    result: RaceResult,
    driver_teams: Dict[str, str],
    team_ids: Iterable[str],
    base_prize: int = 250_000,
    point_value: int = 150_000,
) -> RaceScore:
    """
    Allocate points and prize money.

    Args:
        result: Race output
        driver_teams: driver id -> team id
        team_ids: Every participating team (each gets the base prize)
        base_prize: Fixed award per team
        point_value: Award per point earned

    Returns:
        RaceScore with drivers in finishing order.
    """
    dnfs = set(result.dnfs)
    score = RaceScore()
    for team_id in team_ids:
        score.teams[team_id] = TeamScore(team_id=team_id)

    for rank, driver_id in enumerate(result.classified()):
        is_dnf = driver_id in dnfs
        team_id = driver_teams.get(driver_id, "")
        driver = DriverScore(
            driver_id=driver_id,
            team_id=team_id,
            position=rank + 1,
            points=points_for_rank(rank, is_dnf),
            is_dnf=is_dnf,
            is_win=rank == 0 and not is_dnf,
            is_podium=rank < 3 and not is_dnf,
        )
        score.drivers.append(driver)

        team = score.teams.setdefault(team_id, TeamScore(team_id=team_id))
        team.points += driver.points
        team.wins += int(driver.is_win)
        team.podiums += int(driver.is_podium)

    for team in score.teams.values():
        team.prize_money = prize_money(team.points, base_prize, point_value)
    return score
