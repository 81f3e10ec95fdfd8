# tests/test_runner.py
"""
Tests for step dispatch and the scenario runner (fake browser session).
"""

import json

import pytest
import yaml

from fakes import FakeNode, FakePage, FakeSession

from webauto.config import AppConfig
from webauto.descriptor import StepDescriptor
from webauto.exceptions import ConfigError, StepNotFoundError
from webauto.registry import StepRegistry
from webauto.repository import StepRepository
from webauto.runner import Runner, StepRunner

LOGIN_STEP = {
    "gherkinStep": 'When I login as "bob" with "secret"',
    "actions": [
        {"actionNumber": 1, "actionType": "TYPE", "element": {"id": "user"}, "value": "___RUNTIME_PARAMETER___"},
        {"actionNumber": 2, "actionType": "TYPE", "element": {"id": "pass"}, "value": "___RUNTIME_PARAMETER___"},
        {"actionNumber": 3, "actionType": "CLICK", "element": {"id": "submit"}},
    ],
}

EMAIL_STEP = {
    "gherkinStep": 'When I enter email "a@b.c"',
    "actions": [
        {
            "actionNumber": 1,
            "actionType": "TYPE",
            "element": {
                "id": "email-old",
                "fingerprint": {"attributes": {"type": "input"}, "context": {"nearbyText": "Email"}},
            },
            "value": "___RUNTIME_PARAMETER___",
        },
    ],
}


@pytest.fixture
def config(tmp_path):
    return AppConfig(steps_dir=str(tmp_path / "steps"), artifacts_dir=str(tmp_path / "reports"))


@pytest.fixture
def repo(config):
    repository = StepRepository(config.steps_dir)
    repository.save_step(StepDescriptor.from_dict(LOGIN_STEP))
    repository.save_step(StepDescriptor.from_dict(EMAIL_STEP))
    return repository


@pytest.fixture
def page():
    p = FakePage(labels={"Email": [FakeNode("email", attrs={"type": "input", "id": "email"})]})
    p.add("#user", FakeNode("user"))
    p.add("#pass", FakeNode("pass"))
    p.add("#submit", FakeNode("submit"))
    return p


def write_scenario(tmp_path, data):
    path = tmp_path / "scenario.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


class TestStepRunner:
    def test_step_file_first(self, repo, page, config):
        runner = StepRunner(FakeSession(page, config), repo, StepRegistry(), config)
        outcome = runner.run_step('When I login as "amy" with "pw"')

        assert outcome.source == "repository"
        assert outcome.actions_executed == 3
        assert ("fill", "user", "amy") in page.events

    def test_registry_fallback(self, repo, page, config):
        registry = StepRegistry()
        calls = []

        @registry.step('I dismiss the "cookie" banner')
        def dismiss(actions, which):
            calls.append((actions.page, which))

        runner = StepRunner(FakeSession(page, config), repo, registry, config)
        outcome = runner.run_step('I dismiss the "promo" banner')

        assert outcome.source == "registry"
        assert calls == [(page, "promo")]

    def test_unknown_step(self, repo, page, config):
        runner = StepRunner(FakeSession(page, config), repo, StepRegistry(), config)
        with pytest.raises(StepNotFoundError) as exc_info:
            runner.run_step("When I fly to the moon")
        assert exc_info.value.action_trace[0]["action_name"] == "step"

    def test_healed_selector_is_persisted_on_request(self, repo, page, config):
        runner = StepRunner(FakeSession(page, config), repo, StepRegistry(), config, persist_healed=True)
        outcome = runner.run_step('When I enter email "x@y.z"')

        assert outcome.saved_to is not None
        assert outcome.healed[0]["isHealed"] is True
        element = repo.get_step('When I enter email "q"').actions[0].element
        assert element.healed is True
        assert element.selector == 'internal:label="Email"s'

    def test_healed_selector_not_persisted_by_default(self, repo, page, config):
        runner = StepRunner(FakeSession(page, config), repo, StepRegistry(), config)
        outcome = runner.run_step('When I enter email "x@y.z"')

        assert outcome.saved_to is None
        assert len(outcome.healed) == 1
        assert repo.get_step('When I enter email "q"').actions[0].element.healed is False


class TestRunner:
    def make_runner(self, config, repo, page):
        sessions = []

        def factory(cfg):
            session = FakeSession(page, cfg)
            sessions.append(session)
            return session

        runner = Runner(config, repository=repo, registry=StepRegistry(), session_factory=factory)
        return runner, sessions

    def test_passing_scenario_writes_report(self, tmp_path, config, repo, page):
        scenario = write_scenario(tmp_path, {
            "name": "Login",
            "vars": {"user": "bob"},
            "steps": ['When I login as "${user}" with "${password}"'],
        })
        runner, sessions = self.make_runner(config, repo, page)
        report_path = tmp_path / "out" / "report.json"

        report = runner.run(scenario, variables={"password": "pw"}, report_path=str(report_path))

        assert report["status"] == "passed"
        assert report["steps"][0]["step"] == 'When I login as "bob" with "pw"'
        assert report["steps"][0]["actions"] == 3
        assert ("fill", "pass", "pw") in page.events
        assert sessions[0].started and sessions[0].closed
        assert json.loads(report_path.read_text(encoding="utf-8"))["run_id"] == report["run_id"]

    def test_failure_stops_scenario(self, tmp_path, config, repo, page):
        del page.matches["#submit"]
        scenario = write_scenario(tmp_path, {
            "name": "Broken login",
            "steps": ['When I login as "bob" with "pw"', 'When I enter email "a@b.c"'],
        })
        runner, sessions = self.make_runner(config, repo, page)

        report = runner.run(scenario)

        assert report["status"] == "failed"
        assert len(report["steps"]) == 1
        failed = report["steps"][0]
        assert failed["status"] == "failed"
        assert "ActionError" in failed["error"]
        assert failed["root_cause"].startswith("ElementNotFoundError")
        assert [f["action_name"] for f in failed["action_trace"]][:2] == ["click", "CLICK"]
        assert "screenshot" in failed["artifacts"]
        assert sessions[0].closed

    def test_unknown_step_fails_report(self, tmp_path, config, repo, page):
        scenario = write_scenario(tmp_path, {"name": "Unknown", "steps": ["When I fly"]})
        runner, _ = self.make_runner(config, repo, page)

        report = runner.run(scenario)

        assert report["status"] == "failed"
        assert "No step file or registered handler" in report["errors"][0]

    def test_invalid_scenario(self, tmp_path, config, repo, page):
        scenario = write_scenario(tmp_path, {"name": "No steps", "steps": []})
        runner, sessions = self.make_runner(config, repo, page)

        with pytest.raises(ConfigError):
            runner.run(scenario)
        assert sessions == []

    def test_missing_scenario(self, tmp_path, config, repo, page):
        runner, _ = self.make_runner(config, repo, page)
        with pytest.raises(ConfigError):
            runner.run(str(tmp_path / "nope.yaml"))
