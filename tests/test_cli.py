from datetime import datetime, timezone

import pytest

import ux_bot
from ux_agent.models import ApiTestSuite, UXReport
from ux_agent.scenarios import DEFAULT_SCENARIO, get_scenarios


def parse(*argv):
    return ux_bot.build_parser().parse_args(list(argv))


def report(status):
    now = datetime.now(timezone.utc)
    return UXReport("s", now, now, 0, status, [], [], "", [])


class TestCli:
    def test_default_scenario(self, monkeypatch):
        monkeypatch.delenv("UX_SCENARIO", raising=False)
        assert ux_bot.resolve_scenarios(parse()) == [DEFAULT_SCENARIO]

    def test_scenario_from_environment(self, monkeypatch):
        monkeypatch.setenv("UX_SCENARIO", "Search for a project by name")
        assert ux_bot.resolve_scenarios(parse()) == ["Search for a project by name"]
        assert ux_bot.resolve_scenarios(parse("--scenario", "explicit")) == ["explicit"]

    def test_scenarios_and_category(self):
        args = parse("--scenario", "one", "--scenario", "two", "--category", "payout", "--edge")
        assert ux_bot.resolve_scenarios(args) == ["one", "two"] + get_scenarios("payout", edge=True)

    def test_unknown_category_is_rejected(self):
        with pytest.raises(SystemExit):
            parse("--category", "billing")

    def test_flags_map_to_config(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("UX_HEADLESS", raising=False)
        args = parse("--url", "http://app.test", "--max-steps", "4", "--headed", "--no-screenshots",
                     "--stop-on-critical", "--out", str(tmp_path))
        config = ux_bot.config_from_args(args)

        assert config.base_url == "http://app.test"
        assert config.max_steps == 4
        assert config.headless is False
        assert config.screenshot_on_each_step is False
        assert config.stop_on_critical_issue is True
        assert config.output_dir == str(tmp_path)

    @pytest.mark.parametrize("statuses, code", [(["passed", "partial"], 0), (["passed", "failed"], 1)])
    def test_exit_code(self, monkeypatch, tmp_path, statuses, code):
        monkeypatch.chdir(tmp_path)
        seen = {}

        async def fake_run(scenarios, config):
            seen["scenarios"] = scenarios
            return [report(s) for s in statuses]

        monkeypatch.setattr(ux_bot, "run_in_browser", fake_run)
        assert ux_bot.main(["--scenario", "x"]) == code
        assert seen["scenarios"] == ["x"]

    @pytest.mark.parametrize("failed, code", [(0, 0), (2, 1)])
    def test_api_checks_affect_exit_code(self, monkeypatch, tmp_path, failed, code):
        monkeypatch.chdir(tmp_path)
        seen = {}

        async def fake_run(scenarios, config):
            return [report("passed")]

        async def fake_checks(config):
            seen["api_url"] = config.api_url
            return [ApiTestSuite("Health API", [], 1, failed, 3)]

        monkeypatch.setattr(ux_bot, "run_in_browser", fake_run)
        monkeypatch.setattr(ux_bot, "run_api_checks", fake_checks)
        monkeypatch.setattr(ux_bot, "print_api_results", lambda suites: seen.setdefault("printed", suites))

        assert ux_bot.main(["--scenario", "x", "--api-checks", "--api-url", "http://api.test"]) == code
        assert seen["api_url"] == "http://api.test"
        assert seen["printed"][0].name == "Health API"

    def test_api_checks_are_opt_in(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)

        async def fake_run(scenarios, config):
            return [report("passed")]

        async def unexpected(config):
            raise AssertionError("API checks should not run")

        monkeypatch.setattr(ux_bot, "run_in_browser", fake_run)
        monkeypatch.setattr(ux_bot, "run_api_checks", unexpected)
        assert ux_bot.main(["--scenario", "x"]) == 0
