"""
Tests for Config.
"""

from config import Config


class TestConfigDefaults:
    """Tests for default values."""

    def test_defaults(self, monkeypatch):
        for name in (
            "PADDOCK_LEAGUE_STAGGER_SEC",
            "PADDOCK_POST_RACE_DELAY_SEC",
            "PADDOCK_NOTIFY_URL",
            "PADDOCK_NOTIFY_TIMEOUT_SEC",
            "PADDOCK_LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)

        config = Config()
        assert config.league_stagger_sec == 300.0
        assert config.post_race_delay_sec == 3600.0
        assert config.notify_url is None
        assert config.notify_timeout_sec == 5.0
        assert config.base_prize == 250_000
        assert config.point_value == 150_000
        assert config.bot_upgrade_chance == 0.3
        assert config.update_interval_sec == 120
        assert config.lap_sample_stride == 5
        assert config.log_level == "INFO"


class TestConfigEnvironment:
    """Tests for environment overrides."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PADDOCK_LEAGUE_STAGGER_SEC", "10")
        monkeypatch.setenv("PADDOCK_POST_RACE_DELAY_SEC", "60")
        monkeypatch.setenv("PADDOCK_NOTIFY_URL", "http://hook")
        monkeypatch.setenv("PADDOCK_LOG_LEVEL", "DEBUG")

        config = Config()
        assert config.league_stagger_sec == 10.0
        assert config.post_race_delay_sec == 60.0
        assert config.notify_url == "http://hook"
        assert config.log_level == "DEBUG"

    def test_empty_values_use_defaults(self, monkeypatch):
        monkeypatch.setenv("PADDOCK_LEAGUE_STAGGER_SEC", "")
        monkeypatch.setenv("PADDOCK_NOTIFY_URL", "")
        config = Config()
        assert config.league_stagger_sec == 300.0
        assert config.notify_url is None

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("PADDOCK_LEAGUE_STAGGER_SEC", "10")
        assert Config(league_stagger_sec=0).league_stagger_sec == 0

    def test_archive_dir_created(self, tmp_path):
        archive_dir = tmp_path / "races"
        Config(archive_races=True, archive_dir=archive_dir)
        assert archive_dir.is_dir()
