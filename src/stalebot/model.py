import io
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Pattern

import pydantic
import yaml


DEFAULT_MEMBER_ASSOCIATIONS = ["OWNER", "MEMBER", "COLLABORATOR"]

DEFAULT_CLOSE_MESSAGE = "No more work is being done on this PR. It will now be closed."

DEFAULT_MERGE_CONFLICT_WARNING = (
    "This PR cannot be merged because it has conflicts. Please resolve them. "
    "The PR will be considered stale and closed if it remains in an unmergeable state."
)


class ConfigError(Exception):
    source: Optional[str]

    def __init__(self, *args, source: Optional[str] = None):
        self.source = source
        super().__init__(*args)


class Model(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="forbid", populate_by_name=True)


class Config(Model):
    stale_days: int = pydantic.Field(alias="stale-days", ge=0)
    response_days: int = pydantic.Field(alias="response-days", ge=0)
    merge_conflict_warning_days: int = pydantic.Field(
        3, alias="merge-conflict-warning-days", ge=0
    )

    important_checks_regex: Optional[Pattern[str]] = pydantic.Field(
        None, alias="important-checks-regex"
    )
    skip_labels: List[str] = pydantic.Field(default_factory=list, alias="skip-labels")

    warn_message: Optional[str] = pydantic.Field(None, alias="warn-message")
    close_message: str = pydantic.Field(DEFAULT_CLOSE_MESSAGE, alias="close-message")
    merge_conflict_warning: str = pydantic.Field(
        DEFAULT_MERGE_CONFLICT_WARNING, alias="merge-conflict-warning"
    )
    close_label: Optional[str] = pydantic.Field(None, alias="close-label")

    dry_run: bool = pydantic.Field(False, alias="dry-run")

    member_associations: List[str] = pydantic.Field(
        default_factory=lambda: list(DEFAULT_MEMBER_ASSOCIATIONS),
        alias="member-associations",
    )
    # Earlier policy: a change request only goes stale while no commit has
    # been pushed after it.
    require_no_commits_since_review: bool = pydantic.Field(
        False, alias="require-no-commits-since-review"
    )

    @pydantic.field_validator("skip_labels", "member_associations", mode="before")
    @classmethod
    def split_comma_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @pydantic.field_validator("member_associations")
    @classmethod
    def upper_associations(cls, value: List[str]) -> List[str]:
        return [item.upper() for item in value]

    @pydantic.field_validator(
        "important_checks_regex",
        "warn_message",
        "close_label",
        mode="before",
    )
    @classmethod
    def empty_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and value == "":
            return None
        return value

    def render_warn_message(self, reason: str) -> str:
        if self.warn_message is not None:
            return self.warn_message.replace("STATE", reason, 1)
        return (
            f"This PR has been in {reason} for {self.stale_days} days, and looks "
            f"abandoned. It will be closed in {self.response_days} days if no "
            "further commits are pushed to it."
        )


def parse_config(data: Mapping[str, Any], source: Optional[str] = None) -> Config:
    try:
        return Config.model_validate(dict(data))
    except pydantic.ValidationError as e:
        raise ConfigError(str(e), source=source)


def load_config(
    path: Optional[Path] = None, overrides: Optional[Mapping[str, Any]] = None
) -> Config:
    """Build the run configuration.

    Values from the YAML file at ``path`` come first, ``overrides`` (CLI
    options, keyed by dashed option name) win over them. ``None`` overrides
    are ignored, so unset CLI options do not mask the file.
    """
    data: Dict[str, Any] = {}
    source = None
    if path is not None:
        source = str(path)
        try:
            raw = path.read_text()
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}", source=source)
        try:
            loaded = yaml.safe_load(io.StringIO(raw))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", source=source)
        if loaded is not None:
            if not isinstance(loaded, dict):
                raise ConfigError(
                    f"Config file {path} must contain a mapping", source=source
                )
            data.update(loaded)

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    return parse_config(data, source=source)
