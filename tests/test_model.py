import re

import pytest

from stalebot.model import (
    DEFAULT_CLOSE_MESSAGE,
    Config,
    ConfigError,
    load_config,
    parse_config,
)


def test_parse_config_with_dashed_keys():
    config = parse_config(
        {
            "stale-days": 21,
            "response-days": 10,
            "important-checks-regex": "^build$",
            "skip-labels": "keep-open, wip",
            "close-label": "stale",
            "member-associations": "owner,member",
        }
    )
    assert config.stale_days == 21
    assert config.response_days == 10
    assert config.merge_conflict_warning_days == 3
    assert config.important_checks_regex == re.compile("^build$")
    assert config.skip_labels == ["keep-open", "wip"]
    assert config.close_label == "stale"
    assert config.close_message == DEFAULT_CLOSE_MESSAGE
    assert config.member_associations == ["OWNER", "MEMBER"]
    assert not config.dry_run
    assert not config.require_no_commits_since_review


def test_empty_strings_are_unset():
    config = parse_config(
        {
            "stale-days": 1,
            "response-days": 1,
            "important-checks-regex": "",
            "warn-message": "",
            "close-label": "",
        }
    )
    assert config.important_checks_regex is None
    assert config.warn_message is None
    assert config.close_label is None


@pytest.mark.parametrize(
    "data",
    [
        {"response-days": 10},
        {"stale-days": "twenty", "response-days": 10},
        {"stale-days": 21, "response-days": -1},
        {"stale-days": 21, "response-days": 10, "important-checks-regex": "(unclosed"},
        {"stale-days": 21, "response-days": 10, "unknown-option": True},
    ],
)
def test_invalid_config(data):
    with pytest.raises(ConfigError):
        parse_config(data)


def test_render_warn_message():
    config = Config(stale_days=21, response_days=10)
    message = config.render_warn_message("BUILD FAILING")
    assert message.startswith("This PR has been in BUILD FAILING for 21 days")
    assert "closed in 10 days" in message

    config = Config(stale_days=21, response_days=10, warn_message="STATE! (STATE)")
    assert config.render_warn_message("MERGE CONFLICTS") == "MERGE CONFLICTS! (STATE)"


def test_load_config_file_with_overrides(tmp_path):
    path = tmp_path / "stalebot.yml"
    path.write_text(
        "stale-days: 30\n"
        "response-days: 7\n"
        "skip-labels:\n"
        "  - keep-open\n"
        "close-message: Closing.\n"
    )

    config = load_config(path, {"response-days": 14, "close-label": None})
    assert config.stale_days == 30
    assert config.response_days == 14
    assert config.skip_labels == ["keep-open"]
    assert config.close_message == "Closing."
    assert config.close_label is None


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yml")

    path = tmp_path / "list.yml"
    path.write_text("- stale-days\n")
    with pytest.raises(ConfigError):
        load_config(path)

    path = tmp_path / "broken.yml"
    path.write_text("stale-days: [\n")
    with pytest.raises(ConfigError) as excinfo:
        load_config(path)
    assert excinfo.value.source == str(path)


def test_load_config_without_file():
    config = load_config(None, {"stale-days": 5, "response-days": 2, "dry-run": True})
    assert config.dry_run
