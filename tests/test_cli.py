import pytest

from tokenlens.cli import parse_args


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: "pytest.MonkeyPatch") -> "None":
    for name in ("TOKENLENS_SNAPSHOT_PATH", "TOKENLENS_SOURCE_URL", "TOKENLENS_PREFERENCES"):
        monkeypatch.delenv(name, raising=False)


class TestParseArgs:
    def test_defaults(self) -> "None":
        config, args = parse_args([])

        assert config.source_configured is False
        assert config.refresh_interval == 3.0
        assert config.log_level == "info"
        assert config.listen_address == ""
        assert args.view == "terminal"
        assert args.time_range == "7d"
        assert args.watch is False
        assert args.log_json is False

    def test_flags(self) -> "None":
        config, args = parse_args(
            [
                "--snapshot", "usage.json",
                "--preferences", "prefs.json",
                "--view", "analytics",
                "--range", "30d",
                "--watch",
                "--refresh.interval", "1.5",
                "--web.listen-address", ":9186",
                "--log.level", "debug",
                "--log.json",
            ]
        )

        assert config.snapshot_path == "usage.json"
        assert config.preferences_path == "prefs.json"
        assert config.refresh_interval == 1.5
        assert config.listen_address == ":9186"
        assert config.log_level == "debug"
        assert args.view == "analytics"
        assert args.time_range == "30d"
        assert args.watch is True
        assert args.log_json is True

    def test_environment_is_overridden_by_flags(
        self,
        monkeypatch: "pytest.MonkeyPatch",
    ) -> "None":
        monkeypatch.setenv("TOKENLENS_SOURCE_URL", "http://env.test")
        monkeypatch.setenv("TOKENLENS_SNAPSHOT_PATH", "env.json")

        config, _ = parse_args(["--source.url", "http://flag.test"])

        assert config.source_url == "http://flag.test"
        assert config.snapshot_path == "env.json"

    def test_rejects_unknown_range(self) -> "None":
        with pytest.raises(SystemExit):
            parse_args(["--range", "90d"])
