"""
Weekend orchestrator: qualifying, race and post-race reset for every league.

Each phase is idempotent. A race record moves through
NOT_STARTED -> QUALIFYING_DONE -> RACE_DONE -> POST_RACE_DONE, and a phase
only acts when the record is in the state it expects, so re-running an
invocation never re-simulates a session or awards points twice.
"""

import asyncio
import logging
import math
import random
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Tuple

from config import Config
from .archive import RaceArchive, lap_to_dict, result_to_dict, sample_laps
from .circuits import CircuitProfile, get_circuit
from .entrants import (
    DEFAULT_SETUP,
    CarStats,
    Compound,
    DriverStats,
    Entrant,
    ManagerRole,
    Setup,
    Style,
)
from .errors import MissingDataError
from .notifier import Notifier, format_qualifying_report, format_race_report
from .performance import CRASH_LAP_TIME, RandomSource
from .qualifying import QualifyingResult, pole_sitter, run_qualifying
from .race import RaceResult, simulate_race
from .scoring import RaceScore, score_race
from .store import RaceStore, Record

logger = logging.getLogger(__name__)

BOT_QUALIFYING_STYLES = (Style.NORMAL, Style.NORMAL, Style.OFFENSIVE, Style.MOST_RISKY)
CAR_SLOTS = ("0", "1")
CAR_AXES = ("aero", "powertrain", "chassis")


class RacePhase(Enum):
    """Progress of one race weekend."""
    NOT_STARTED = "not_started"
    QUALIFYING_DONE = "qualifying_done"
    RACE_DONE = "race_done"
    POST_RACE_DONE = "post_race_done"


class PhaseOutcome(Enum):
    """What a phase did for one league or race."""
    COMPLETED = "completed"
    ALREADY_DONE = "already_done"
    NOT_DUE = "not_due"
    NOTHING_SCHEDULED = "nothing_scheduled"
    MISSING_DATA = "missing_data"
    FAILED = "failed"


def race_phase(record: Optional[Record]) -> RacePhase:
    """Derive the weekend state from a stored race record."""
    if not record or not record.get("qualy_grid"):
        return RacePhase.NOT_STARTED
    if record.get("post_race_processed"):
        return RacePhase.POST_RACE_DONE
    if record.get("is_finished"):
        return RacePhase.RACE_DONE
    return RacePhase.QUALIFYING_DONE


def race_id_for(season_id: str, event_id: str) -> str:
    return f"{season_id}_{event_id}"


def playback_duration(grid: List[Record], circuit: CircuitProfile) -> float:
    """Mean clean qualifying lap times the race length, in seconds."""
    clean = [g["lap_time"] for g in grid if g["lap_time"] < CRASH_LAP_TIME]
    if not clean:
        return circuit.base_lap_time * circuit.laps
    return sum(clean) / len(clean) * circuit.laps


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(str(value))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeekendOrchestrator:
    """Runs the weekend phases against the external store."""

    def __init__(
        self,
        config: Config,
        store: RaceStore,
        notifier: Notifier,
        rng: Optional[RandomSource] = None,
        clock: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._config = config
        self._store = store
        self._notifier = notifier
        self._rng = rng or random.Random()
        self._clock = clock
        self._sleep = sleep

    # ==========================================================
    # PHASE ENTRY POINTS
    # ==========================================================
    async def run_qualifying(self) -> Dict[str, PhaseOutcome]:
        """Qualifying for every league's next race. Returns league id -> outcome."""
        logger.info("=== QUALIFYING START ===")
        return await self._for_each_league("qualifying", self._qualify_league)

    async def run_race(self) -> Dict[str, PhaseOutcome]:
        """Race for every league whose grid is set. Returns league id -> outcome."""
        logger.info("=== RACE START ===")
        return await self._for_each_league("race", self._race_league)

    async def run_post_race(self) -> Dict[str, PhaseOutcome]:
        """Post-race reset for every finished race that is due. Returns race id -> outcome."""
        outcomes = {}
        now = self._clock()
        for race_id, race in self._store.finished_races_pending_post_race():
            try:
                outcomes[race_id] = await self._post_race(race_id, race, now)
            except MissingDataError as e:
                logger.warning("Post-race skipped for %s: %s", race_id, e)
                outcomes[race_id] = PhaseOutcome.MISSING_DATA
            except Exception:
                logger.exception("Error in post-race processing for %s", race_id)
                outcomes[race_id] = PhaseOutcome.FAILED
        return outcomes

    async def _for_each_league(
        self,
        phase: str,
        handler: Callable[[Record], Awaitable[PhaseOutcome]],
    ) -> Dict[str, PhaseOutcome]:
        """Run a handler per league, staggered, isolating failures."""
        outcomes = {}
        for index, league in enumerate(self._store.leagues()):
            if index > 0 and self._config.league_stagger_sec > 0:
                await self._sleep(self._config.league_stagger_sec)

            league_id = league.get("id", "")
            try:
                outcomes[league_id] = await handler(league)
            except MissingDataError as e:
                logger.warning("%s skipped for league %s: %s", phase.capitalize(), league_id, e)
                outcomes[league_id] = PhaseOutcome.MISSING_DATA
            except Exception:
                logger.exception("Error in %s for league %s", phase, league_id)
                outcomes[league_id] = PhaseOutcome.FAILED
        return outcomes

    # ==========================================================
    # QUALIFYING
    # ==========================================================
    async def _qualify_league(self, league: Record) -> PhaseOutcome:
        current = self._current_event(league)
        if current is None:
            return PhaseOutcome.NOTHING_SCHEDULED
        season_id, _, _, event = current

        race_id = race_id_for(season_id, event["id"])
        if race_phase(self._store.get_race(race_id)) is not RacePhase.NOT_STARTED:
            logger.info("Qualifying already done: %s", race_id)
            return PhaseOutcome.ALREADY_DONE

        team_ids = self._league_team_ids(league)
        if not team_ids:
            return PhaseOutcome.NOTHING_SCHEDULED
        teams = self._store.get_teams(team_ids)
        if not teams:
            raise MissingDataError("teams", league.get("id", ""))

        circuit = get_circuit(event.get("circuit_id", ""))
        logger.info("Qualifying: %s - %s", league.get("name", league.get("id")), event.get("track_name"))

        entrants = []
        submitted = {}
        for team in teams:
            role = self._manager_role(team)
            for car_index, driver in enumerate(self._store.get_team_drivers(team["id"])):
                setup, was_sent = self._qualifying_setup(team, driver["id"], circuit)
                submitted[driver["id"]] = was_sent
                entrants.append(self._entrant(team, driver, car_index, setup, role))

        grid = run_qualifying(circuit, entrants, self._rng)
        for result in grid:
            result.setup_submitted = submitted[result.driver_id]

        grid_records = [r.to_dict() for r in grid]
        self._store.update_race(race_id, {
            "season_id": season_id,
            "race_event_id": event["id"],
            "track_name": event.get("track_name", ""),
            "circuit_id": event.get("circuit_id", ""),
            "qualy_grid": grid_records,
            "status": "qualifying",
            "updated_at": self._clock().isoformat(),
        })

        await self._announce_qualifying(league, event, grid)
        logger.info("Qualifying complete: %s", race_id)
        return PhaseOutcome.COMPLETED

    def _qualifying_setup(self, team: Record, driver_id: str, circuit: CircuitProfile) -> Tuple[Setup, bool]:
        """Setup for a qualifying lap, and whether the team actually submitted one."""
        if team.get("is_bot"):
            setup = replace(
                self._jittered_ideal(circuit),
                qualifying_style=BOT_QUALIFYING_STYLES[self._pick(len(BOT_QUALIFYING_STYLES))],
            )
            return setup, True

        submission = self._submission(team, driver_id)
        if submission and submission.get("qualifying"):
            return Setup.from_dict(submission["qualifying"]), True
        return DEFAULT_SETUP, bool(submission)

    async def _announce_qualifying(self, league: Record, event: Record, grid: List[QualifyingResult]) -> None:
        pole = pole_sitter(grid)
        if pole is not None:
            self._store.increment("drivers", pole.driver_id, {"poles": 1})
            self._store.increment("teams", pole.team_id, {"poles": 1})
            await self._notifier.press(
                league.get("id", ""),
                f"POLE POSITION: {event.get('track_name', '').upper()}",
                f"{pole.driver_name} ({pole.team_name}) takes POLE!",
                "POLE",
                event_type="Qualifying",
                pilot_name=pole.driver_name,
                team_name=pole.team_name,
            )

        by_team: Dict[str, List[Record]] = {}
        for result in grid:
            by_team.setdefault(result.team_id, []).append(result.to_dict())
        for team_id, entries in by_team.items():
            await self._notifier.office(
                team_id,
                "Qualifying Results",
                format_qualifying_report(entries),
                "QUALIFYING_RESULT",
                event_type="Qualifying",
            )

    # ==========================================================
    # RACE
    # ==========================================================
    async def _race_league(self, league: Record) -> PhaseOutcome:
        current = self._current_event(league)
        if current is None:
            return PhaseOutcome.NOTHING_SCHEDULED
        season_id, _, _, event = current

        race_id = race_id_for(season_id, event["id"])
        race = self._store.get_race(race_id)
        phase = race_phase(race)
        if phase is RacePhase.NOT_STARTED:
            raise MissingDataError("qualifying grid", race_id)
        if phase is not RacePhase.QUALIFYING_DONE:
            # Simulated already, but its calendar entry is still open: an earlier run stopped part way
            logger.info("Race already simulated, finishing payout and calendar: %s", race_id)
            await self._finish_race(league, current, race_id, race)
            return PhaseOutcome.COMPLETED

        circuit = get_circuit(event.get("circuit_id", ""))
        logger.info("Race: %s - %s", league.get("name", league.get("id")), event.get("track_name"))

        grid = race["qualy_grid"]
        team_ids = list(dict.fromkeys(g["team_id"] for g in grid))
        teams = {team["id"]: team for team in self._store.get_teams(team_ids)}
        roles = {team_id: self._manager_role(team) for team_id, team in teams.items()}

        entrants = []
        for slot in grid:
            driver = self._store.get_driver(slot["driver_id"])
            if driver is None:
                logger.warning("Driver %s missing from %s, dropped from the race", slot["driver_id"], race_id)
                continue
            team = teams.get(slot["team_id"], {"id": slot["team_id"]})
            setup = self._race_setup(team, slot["driver_id"], circuit)
            setup = replace(setup, tyre_compound=Compound(slot.get("tyre_compound") or "medium"))
            entrants.append(self._entrant(
                team,
                driver,
                slot.get("car_index", 0),
                setup,
                roles.get(slot["team_id"], ManagerRole.NONE),
            ))
        if not entrants:
            raise MissingDataError("drivers", race_id)

        result = simulate_race(circuit, entrants, self._rng)
        now = self._clock()

        self._store.save_race_laps(
            race_id,
            [lap_to_dict(lap) for lap in sample_laps(result.laps, self._config.lap_sample_stride)],
        )
        if self._config.archive_races:
            path = RaceArchive(str(self._config.archive_dir)).write(
                race_id, result, {"track_name": event.get("track_name"), "circuit_id": circuit.id}
            )
            logger.info("Race log archived to %s", path)

        # Results, the finished marker and the post-race schedule land in one write
        self._store.update_race(race_id, {
            **result_to_dict(result),
            "status": "completed",
            "is_finished": True,
            "live_duration_seconds": playback_duration(grid, circuit),
            "update_interval_seconds": self._config.update_interval_sec,
            "completed_at": now.isoformat(),
            "post_race_processing_at": (now + timedelta(seconds=self._config.post_race_delay_sec)).isoformat(),
        })

        await self._finish_race(league, current, race_id, self._store.get_race(race_id))
        logger.info("Race complete: %s", race_id)
        return PhaseOutcome.COMPLETED

    async def _finish_race(
        self,
        league: Record,
        current: Tuple[str, Record, int, Record],
        race_id: str,
        race: Record,
    ) -> None:
        """
        Lock teams, pay out, close the calendar entry and announce.

        Works from the stored result only, so an interrupted run can be
        completed on the next invocation. Payouts already recorded in
        ``awarded_to`` are not repeated.
        """
        season_id, season, event_index, event = current
        grid = race["qualy_grid"]
        team_ids = list(dict.fromkeys(g["team_id"] for g in grid))
        teams = {team["id"]: team for team in self._store.get_teams(team_ids)}
        names = {g["driver_id"]: g.get("driver_name") or g["driver_id"] for g in grid}

        result = RaceResult(
            laps=(),
            final_positions=race.get("final_positions", {}),
            total_times=race.get("total_times", {}),
            dnfs=race.get("dnfs", []),
        )
        driver_teams = {g["driver_id"]: g["team_id"] for g in grid}
        score = score_race(result, driver_teams, team_ids, self._config.base_prize, self._config.point_value)

        if not race.get("awarded"):
            # Post-race reset unlocks teams, so never lock again after it ran
            if not race.get("post_race_processed"):
                for team_id, team in teams.items():
                    week_status = dict(team.get("week_status") or {})
                    week_status["is_locked_for_processing"] = True
                    self._store.update_team(team_id, {"week_status": week_status})
            self._award(race_id, score, race.get("awarded_to") or [])
            self._store.update_race(race_id, {"awarded": True})

        calendar = [dict(entry) for entry in season.get("calendar", [])]
        calendar[event_index]["is_completed"] = True
        self._store.update_season(season_id, {"calendar": calendar})

        await self._announce_race(league, event, names, teams, score)

    def _race_setup(self, team: Record, driver_id: str, circuit: CircuitProfile) -> Setup:
        if team.get("is_bot"):
            return replace(
                self._jittered_ideal(circuit),
                initial_fuel=80.0 + self._pick(20),
                pit_stops=(Compound.HARD, Compound.MEDIUM),
                pit_stop_fuel=(60.0, 40.0),
                race_style=Style.NORMAL,
            )

        submission = self._submission(team, driver_id)
        if submission and submission.get("race"):
            return Setup.from_dict(submission["race"])
        return DEFAULT_SETUP

    def _award(self, race_id: str, score: RaceScore, already_paid: List[str]) -> None:
        """Increment driver and team counters and pay prize money, at most once per record."""
        paid = list(already_paid)
        for collection, record_id, counters in self._award_counters(score):
            key = f"{collection}/{record_id}"
            if key in paid:
                continue
            self._store.increment(collection, record_id, counters)
            paid.append(key)
            self._store.update_race(race_id, {"awarded_to": paid})

    @staticmethod
    def _award_counters(score: RaceScore) -> Iterator[Tuple[str, str, Dict[str, int]]]:
        for driver in score.drivers:
            if driver.is_dnf:
                continue
            counters = {"races": 1, "season_races": 1}
            if driver.points > 0:
                counters.update(points=driver.points, season_points=driver.points)
            if driver.is_win:
                counters.update(wins=1, season_wins=1)
            if driver.is_podium:
                counters.update(podiums=1, season_podiums=1)
            yield "drivers", driver.driver_id, counters

        for team in score.teams.values():
            counters = {"budget": team.prize_money, "races": 1, "season_races": 1}
            if team.points > 0:
                counters.update(points=team.points, season_points=team.points)
            if team.wins > 0:
                counters.update(wins=1, season_wins=1)
            if team.podiums > 0:
                counters.update(podiums=team.podiums, season_podiums=team.podiums)
            yield "teams", team.team_id, counters

    async def _announce_race(
        self,
        league: Record,
        event: Record,
        names: Dict[str, str],
        teams: Dict[str, Record],
        score: RaceScore,
    ) -> None:
        winner = score.winner()
        if winner is not None:
            team_name = teams.get(winner.team_id, {}).get("name", "")
            await self._notifier.press(
                league.get("id", ""),
                f"RACE WINNER: {event.get('track_name', '').upper()}",
                f"{names[winner.driver_id]} ({team_name}) wins!",
                "WINNER",
                event_type="Race",
                pilot_name=names[winner.driver_id],
                team_name=team_name,
            )

        by_team: Dict[str, List[Record]] = {}
        for driver in score.drivers:
            by_team.setdefault(driver.team_id, []).append({
                "name": names.get(driver.driver_id, driver.driver_id),
                "pos": "DNF" if driver.is_dnf else f"P{driver.position}",
                "pts": driver.points,
            })
        for team_id, entries in by_team.items():
            await self._notifier.office(
                team_id,
                f"Race Results: {event.get('track_name', '')}",
                format_race_report(entries, score.teams[team_id].prize_money),
                "RACE_RESULT",
                event_type="Race",
            )

    # ==========================================================
    # POST-RACE
    # ==========================================================
    async def _post_race(self, race_id: str, race: Record, now: datetime) -> PhaseOutcome:
        due_at = race.get("post_race_processing_at")
        if not due_at or now < _parse_time(due_at):
            return PhaseOutcome.NOT_DUE

        logger.info("Post-race processing: %s", race_id)

        team_ids: Dict[str, None] = {}
        for driver_id in race.get("final_positions", {}):
            driver = self._store.get_driver(driver_id)
            if driver is not None and driver.get("team_id"):
                team_ids[driver["team_id"]] = None

        for team_id in team_ids:
            team = self._store.get_team(team_id)
            if team is None:
                logger.warning("Team %s missing during post-race for %s", team_id, race_id)
                continue
            self._reset_week(team)
            if team.get("is_bot"):
                self._develop_bot_car(team)

        self._store.update_race(race_id, {
            "post_race_processed": True,
            "processed_at": now.isoformat(),
        })
        logger.info("Post-race done: %s", race_id)
        return PhaseOutcome.COMPLETED

    def _reset_week(self, team: Record) -> None:
        """Unlock the team and clear the weekly flags, counting down any upgrade cooldown."""
        cooldown = (team.get("week_status") or {}).get("upgrade_cooldown_weeks_left") or 0
        if cooldown > 0:
            cooldown -= 1
        self._store.update_team(team["id"], {
            "week_status": {
                "practice_completed": False,
                "strategy_set": False,
                "sponsor_reviewed": False,
                "has_upgraded_this_week": False,
                "upgrades_this_week": 0,
                "upgrade_cooldown_weeks_left": cooldown,
                "is_locked_for_processing": False,
            },
        })

    def _develop_bot_car(self, team: Record) -> None:
        """Each stat of each car slot independently gains a point with a fixed chance."""
        car_stats = {slot: dict(stats) for slot, stats in (team.get("car_stats") or {}).items()}
        upgraded = False
        for slot in CAR_SLOTS:
            stats = car_stats.setdefault(slot, {})
            for axis in CAR_AXES:
                if self._rng.random() < self._config.bot_upgrade_chance:
                    stats[axis] = (stats.get(axis) or 1) + 1
                    upgraded = True
        if upgraded:
            self._store.update_team(team["id"], {"car_stats": car_stats})

    # ==========================================================
    # HELPERS
    # ==========================================================
    def _current_event(self, league: Record) -> Optional[Tuple[str, Record, int, Record]]:
        """(season id, season, calendar index, event) of the next incomplete race."""
        season_id = league.get("current_season_id")
        if not season_id:
            return None
        season = self._store.get_season(season_id)
        if season is None:
            raise MissingDataError("season", season_id)
        for index, event in enumerate(season.get("calendar", [])):
            if not event.get("is_completed"):
                return season_id, season, index, event
        return None

    @staticmethod
    def _league_team_ids(league: Record) -> List[str]:
        team_ids = []
        for division in league.get("divisions", []):
            team_ids.extend(division.get("team_ids", []))
        return team_ids

    def _manager_role(self, team: Record) -> ManagerRole:
        manager_id = team.get("manager_id")
        if not manager_id:
            return ManagerRole.NONE
        manager = self._store.get_manager(manager_id)
        if manager is None:
            return ManagerRole.NONE
        return ManagerRole.from_tag(manager.get("role"))

    @staticmethod
    def _submission(team: Record, driver_id: str) -> Optional[Record]:
        """The driver's submitted setup for this week, if it was sent."""
        week_status = team.get("week_status") or {}
        submission = (week_status.get("driver_setups") or {}).get(driver_id)
        if submission and submission.get("is_setup_sent"):
            return submission
        return None

    def _pick(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        return math.floor(self._rng.random() * n)

    def _jittered_ideal(self, circuit: CircuitProfile) -> Setup:
        """The circuit's ideal setup with each axis moved by -5..+4 units."""
        ideal = circuit.ideal_setup
        return replace(
            DEFAULT_SETUP,
            front_wing=ideal.front_wing + self._pick(10) - 5,
            rear_wing=ideal.rear_wing + self._pick(10) - 5,
            suspension=ideal.suspension + self._pick(10) - 5,
            gear_ratio=ideal.gear_ratio + self._pick(10) - 5,
        )

    @staticmethod
    def _entrant(team: Record, driver: Record, car_index: int, setup: Setup, role: ManagerRole) -> Entrant:
        return Entrant(
            driver_id=driver["id"],
            name=driver.get("name", driver["id"]),
            team_id=team["id"],
            team_name=team.get("name", team["id"]),
            car_index=car_index,
            car=CarStats.from_dict((team.get("car_stats") or {}).get(str(car_index))),
            stats=DriverStats.from_dict(driver.get("stats")),
            setup=setup,
            role=role,
        )
