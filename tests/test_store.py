"""
Tests for the in-memory store.
"""

import json
import os
import tempfile

from paddock.store import InMemoryStore


def make_store() -> InMemoryStore:
    """Helper to create a small world."""
    return InMemoryStore({
        "leagues": {"L1": {"divisions": [{"team_ids": ["t1", "missing"]}, {"team_ids": ["t2"]}]}},
        "teams": {"t1": {"name": "One", "budget": 10}, "t2": {"name": "Two"}},
        "drivers": {
            "d1": {"team_id": "t1"},
            "d2": {"team_id": "t1"},
            "d3": {"team_id": "t2"},
        },
    })


class TestReads:
    """Tests for record reads."""

    def test_records_carry_their_id(self):
        store = make_store()
        assert store.get_team("t1")["id"] == "t1"
        assert store.leagues()[0]["id"] == "L1"
        assert [d["id"] for d in store.get_team_drivers("t1")] == ["d1", "d2"]

    def test_missing_record(self):
        assert make_store().get_driver("nobody") is None

    def test_reads_are_copies(self):
        """Test mutating a returned record does not touch the store."""
        store = make_store()
        store.get_team("t1")["budget"] = 999
        assert store.get_team("t1")["budget"] == 10

    def test_get_teams_skips_missing(self):
        store = make_store()
        assert [t["id"] for t in store.get_teams(["t2", "missing", "t1"])] == ["t2", "t1"]

    def test_all_teams_across_divisions(self):
        assert [t["id"] for t in make_store().all_teams()] == ["t1", "t2"]


class TestWrites:
    """Tests for record writes."""

    def test_update_merges(self):
        store = make_store()
        store.update_team("t1", {"poles": 1})
        team = store.get_team("t1")
        assert team["poles"] == 1
        assert team["budget"] == 10

    def test_update_race_creates(self):
        store = make_store()
        store.update_race("S1_r1", {"status": "qualifying"})
        assert store.get_race("S1_r1")["status"] == "qualifying"

    def test_increment(self):
        store = make_store()
        store.increment("teams", "t1", {"budget": 250_000, "races": 1})
        store.increment("teams", "t1", {"races": 1})
        team = store.get_team("t1")
        assert team["budget"] == 250_010
        assert team["races"] == 2

    def test_pending_post_race(self):
        store = make_store()
        store.update_race("a", {"is_finished": True})
        store.update_race("b", {"is_finished": True, "post_race_processed": True})
        store.update_race("c", {"status": "qualifying"})
        assert [race_id for race_id, _ in store.finished_races_pending_post_race()] == ["a"]

    def test_race_laps(self):
        store = make_store()
        store.save_race_laps("r", [{"lap": 1}, {"lap": 6}])
        assert store.get_race_laps("r") == [{"lap": 1}, {"lap": 6}]
        assert store.get_race_laps("other") == []


class TestJsonRoundTrip:
    """Tests for JSON persistence."""

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "nested", "world.json")
            store = make_store()
            store.increment("drivers", "d1", {"wins": 1})
            store.save(path)

            with open(path) as f:
                assert "drivers" in json.load(f)

            loaded = InMemoryStore.from_json(path)
            assert loaded.get_driver("d1")["wins"] == 1
            assert loaded.get_team("t1")["name"] == "One"
