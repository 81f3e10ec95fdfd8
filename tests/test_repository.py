# tests/test_repository.py
"""
Tests for step file naming, loading and saving.
"""

import json

import pytest
import yaml

from webauto.descriptor import StepDescriptor
from webauto.exceptions import ConfigError
from webauto.repository import StepRepository, generate_step_file_name, normalize_step


@pytest.mark.parametrize("text,expected", [
    ('When I login with "bob" and "secret"', "when_i_login_with_param_and_param.json"),
    ("When I login with 'amy' and 'x'", "when_i_login_with_param_and_param.json"),
    ("Then I wait 5 seconds", "then_i_wait_param_seconds.json"),
    ("Given the user is on the Home-Page!", "given_the_user_is_on_the_home_page.json"),
    ("  Trailing  spaces  ", "trailing_spaces.json"),
])
def test_generate_step_file_name(text, expected):
    assert generate_step_file_name(text) == expected


def test_numbers_inside_words_are_kept():
    assert normalize_step("When I open tab2") == "when_i_open_tab2"


STEP = {
    "gherkinStep": 'When I search for "shoes"',
    "actions": [
        {"actionNumber": 1, "actionType": "TYPE", "element": {"id": "q"}, "value": "___RUNTIME_PARAMETER___"},
    ],
}


@pytest.fixture
def repo(tmp_path):
    return StepRepository(str(tmp_path / "steps"))


def test_missing_step_returns_none(repo):
    assert repo.get_step("When I do nothing") is None
    assert not repo.step_exists("When I do nothing")
    assert repo.get_actions("When I do nothing") is None


def test_save_and_load(repo):
    path = repo.save_step(StepDescriptor.from_dict(STEP))

    assert path.endswith("when_i_search_for_param.json")
    with open(path, encoding="utf-8") as f:
        saved = json.load(f)
    assert saved["metadata"]["totalActions"] == 1
    assert "createdDate" in saved["metadata"]
    assert saved["normalizedStep"] == "when_i_search_for_param"

    loaded = repo.get_step('When I search for "boots"')
    assert loaded.gherkin_step == 'When I search for "shoes"'
    assert loaded.actions[0].element.id == "q"
    assert [a.action_number for a in repo.get_actions('When I search for "hats"')] == [1]


def test_yaml_step_file(repo, tmp_path):
    steps_dir = tmp_path / "steps"
    steps_dir.mkdir()
    (steps_dir / "when_i_search_for_param.yaml").write_text(yaml.safe_dump(STEP), encoding="utf-8")

    assert repo.step_exists('When I search for "x"')
    assert repo.get_step('When I search for "x"').step_file_name == "when_i_search_for_param.yaml"


def test_invalid_step_file(repo, tmp_path):
    steps_dir = tmp_path / "steps"
    steps_dir.mkdir()
    (steps_dir / "when_i_break.json").write_text(json.dumps({"actions": []}), encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        repo.get_step("When I break")
    assert "gherkinStep" in str(exc_info.value)


def test_malformed_json(repo, tmp_path):
    steps_dir = tmp_path / "steps"
    steps_dir.mkdir()
    (steps_dir / "when_i_break.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError):
        repo.get_step("When I break")


def test_list_steps(repo, tmp_path):
    repo.save_step(StepDescriptor.from_dict(STEP))
    (tmp_path / "steps" / "broken.json").write_text("[]", encoding="utf-8")

    listing = {entry["file"]: entry for entry in repo.list_steps()}
    assert listing["when_i_search_for_param.json"]["actions"] == 1
    assert "error" in listing["broken.json"]
