from datetime import timedelta
from pathlib import Path

import pytest

from prsweep.config import Settings, build_run_config, load_settings
from prsweep.errors import ConfigError
from prsweep.models import PullRequestRef


def test_missing_default_config_yields_defaults() -> None:
    settings = load_settings()
    assert settings == Settings()
    assert settings.max_pages == 20


def test_missing_explicit_config_is_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "nope.yaml")


def test_load_settings_sections(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        """
logging:
  json_enabled: true
  level: DEBUG
github:
  page_size: 50
  max_pages: 3
  timeout: 10
  fetch_timeout: 60
registries:
  templates_dir: templates
  actions_dir: /abs/actions
defaults:
  repositories: [acme/widgets]
  throttle: 15m
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("PRSWEEP_CONFIG", str(cfg))

    settings = load_settings()

    assert settings.source_file == cfg
    assert settings.logging_json_enabled is True
    assert settings.logging_level == "DEBUG"
    assert (settings.page_size, settings.max_pages) == (50, 3)
    assert settings.request_timeout == 10.0
    assert settings.fetch_timeout == 60.0
    assert settings.templates_dir == tmp_path / "templates"
    assert settings.actions_dir == Path("/abs/actions")
    assert settings.default_repositories == ["acme/widgets"]
    assert settings.default_throttle == "15m"


@pytest.mark.parametrize(
    "text",
    ["logging: [1, 2]\n", "- just\n- a list\n", "github:\n  page_size: lots\n", "a: [unclosed\n"],
)
def test_malformed_settings(tmp_path: Path, text: str) -> None:
    cfg = tmp_path / "config.yaml"
    cfg.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(cfg)


def test_url_refs_add_repositories() -> None:
    config = build_run_config(
        repositories=["z/z"], refs=[PullRequestRef(5, "a/a"), PullRequestRef(5, "z/z")]
    )
    assert config.repositories == ("a/a", "z/z")


def test_url_refs_alone_are_enough() -> None:
    config = build_run_config(repositories=[], refs=[PullRequestRef(1, "o/r")])
    assert config.repositories == ("o/r",)


@pytest.mark.parametrize("refs", [[], [PullRequestRef(3)]])
def test_repository_required_for_numeric_or_no_refs(refs) -> None:  # type: ignore
    with pytest.raises(ConfigError, match="--repo is required"):
        build_run_config(repositories=[], refs=refs)


def test_invalid_repository_and_throttle() -> None:
    with pytest.raises(ConfigError, match="invalid repository format"):
        build_run_config(repositories=["nope"])
    with pytest.raises(ConfigError, match="invalid throttle"):
        build_run_config(repositories=["a/b"], throttle="soon")


def test_throttle_accepts_timedelta_and_text() -> None:
    assert build_run_config(repositories=["a/b"], throttle="2h").throttle == timedelta(hours=2)
    window = timedelta(seconds=9)
    assert build_run_config(repositories=["a/b"], throttle=window).throttle == window
    assert build_run_config(repositories=["a/b"]).throttle == timedelta(0)
