"""Tests for MupContext and ScopedContext."""

from pathlib import Path

import pytest
import yaml

from mupctl.core.async_utils import run_sync
from mupctl.core.context import MupContext, ScopedContext
from mupctl.core.exceptions import (
    ConfigNotFound,
    CredentialMissing,
    SettingsNotFound,
    SettingsParseError,
)
from mupctl.core.output import OutputFormatter


class TestAccessors:
    """Tests for simple context accessors."""

    def test_values(self, tmp_path: Path):
        ctx = MupContext(base=tmp_path, args=["--cached-build"], verbose=True)
        assert ctx.base_path == tmp_path
        assert ctx.args == ["--cached-build"]
        assert ctx.verbose is True

    def test_defaults(self, tmp_path: Path):
        ctx = MupContext(base=str(tmp_path))
        assert ctx.base_path == tmp_path
        assert ctx.args == []
        assert ctx.verbose is False
        assert ctx.config_file is None


class TestGetConfig:
    """Tests for config loading through the context."""

    def test_loads_default_path(self, mup_context, project_dir, config_dict):
        assert mup_context.get_config() == config_dict
        assert mup_context.config_file == project_dir / "mup.yaml"

    def test_cached(self, mup_context):
        assert mup_context.get_config() is mup_context.get_config()

    def test_missing(self, tmp_path: Path):
        ctx = MupContext(base=tmp_path, output=OutputFormatter(color=False))
        with pytest.raises(ConfigNotFound):
            ctx.get_config()

    def test_explicit_path_moves_base(self, tmp_path: Path, config_dict):
        deploy_dir = tmp_path / ".deploy"
        deploy_dir.mkdir()
        (deploy_dir / "custom.yaml").write_text(yaml.safe_dump(config_dict, sort_keys=False))

        ctx = MupContext(base=tmp_path, config_path=str(deploy_dir / "custom.yaml"))
        ctx.get_config()
        assert ctx.base_path == deploy_dir

    def test_validation_problems_printed_not_raised(self, tmp_path: Path, capsys):
        (tmp_path / "mup.yaml").write_text("servers:\n  one:\n    username: root\n")
        ctx = MupContext(base=tmp_path, output=OutputFormatter(color=False))
        config = ctx.get_config()
        assert config == {"servers": {"one": {"username": "root"}}}
        out = capsys.readouterr().out
        assert "1 Validation Error" in out
        assert "servers.one.host" in out

    def test_validate_false_prints_nothing(self, tmp_path: Path, capsys):
        (tmp_path / "mup.yaml").write_text("servers:\n  one:\n    username: root\n")
        ctx = MupContext(base=tmp_path, output=OutputFormatter(color=False))
        ctx.get_config(validate=False)
        assert capsys.readouterr().out == ""


class TestGetSettings:
    """Tests for settings loading through the context."""

    def test_loads_default_path(self, mup_context):
        assert mup_context.get_settings() == {"public": {"env": "production"}}

    def test_cached(self, mup_context, project_dir):
        first = mup_context.get_settings()
        (project_dir / "settings.json").write_text('{"changed": true}')
        assert mup_context.get_settings() is first

    def test_explicit_path(self, tmp_path: Path):
        (tmp_path / "prod.json").write_text("[1, 2]")
        ctx = MupContext(base=tmp_path, settings_path=str(tmp_path / "prod.json"))
        assert ctx.get_settings() == [1, 2]

    def test_empty_object_cached(self, tmp_path: Path):
        path = tmp_path / "settings.json"
        path.write_text("{}")
        ctx = MupContext(base=tmp_path)
        assert ctx.get_settings() == {}
        path.unlink()
        assert ctx.get_settings() == {}

    def test_missing(self, tmp_path: Path):
        with pytest.raises(SettingsNotFound):
            MupContext(base=tmp_path).get_settings()

    def test_parse_error_leaves_nothing_cached(self, tmp_path: Path):
        path = tmp_path / "settings.json"
        path.write_text('{"a": 1,}')
        ctx = MupContext(base=tmp_path)
        with pytest.raises(SettingsParseError):
            ctx.get_settings()
        path.write_text('{"a": 1}')
        assert ctx.get_settings() == {"a": 1}


class TestSessions:
    """Tests for session access through the context."""

    def test_get_sessions(self, mup_context):
        names = [s.name for s in mup_context.get_sessions(["app", "db"])]
        assert names == ["one", "two", "three"]

    def test_get_sessions_missing_module(self, mup_context):
        assert mup_context.get_sessions(["missing-module"]) == []

    def test_registry_built_once(self, mup_context):
        assert mup_context.sessions is mup_context.sessions

    def test_credential_error_is_raised(self, tmp_path: Path):
        (tmp_path / "mup.yaml").write_text("servers:\n  one:\n    host: h\n    username: root\n")
        ctx = MupContext(base=tmp_path, output=OutputFormatter(color=False))
        with pytest.raises(CredentialMissing):
            ctx.get_sessions(["app"])


class TestScopedContext:
    """Tests for with_sessions views."""

    def test_narrowed_sessions(self, mup_context):
        scoped = mup_context.with_sessions(["app"])
        assert isinstance(scoped, ScopedContext)
        assert list(scoped.sessions) == ["one", "two"]

    def test_shares_config_and_settings(self, mup_context):
        scoped = mup_context.with_sessions(["app"])
        assert scoped.get_config() is mup_context.get_config()
        assert scoped.get_settings() is mup_context.get_settings()

    def test_settings_loaded_through_view_are_cached_on_root(self, mup_context):
        scoped = mup_context.with_sessions(["db"])
        settings = scoped.get_settings()
        assert mup_context.get_settings() is settings

    def test_delegates_accessors(self, mup_context):
        scoped = mup_context.with_sessions(["db"])
        assert scoped.base_path == mup_context.base_path
        assert scoped.args is mup_context.args
        assert scoped.verbose == mup_context.verbose
        assert scoped.output is mup_context.output
        assert scoped.root is mup_context
        assert scoped.config_file == mup_context.config_file
        assert scoped.config_file == mup_context.base_path / "mup.yaml"
        assert scoped.validate_config(scoped.config_file) == []

    def test_validate_config_through_view(self, tmp_path, capsys):
        (tmp_path / "mup.yaml").write_text(
            "servers:\n  one:\n    username: root\n    password: pw\n"
            "app:\n  servers:\n    one: {}\n"
        )
        ctx = MupContext(base=tmp_path, output=OutputFormatter(color=False))
        scoped = ctx.with_sessions(["app"])
        capsys.readouterr()
        problems = scoped.validate_config(scoped.config_file)
        assert problems == ["servers.one.host: Field required"]
        assert "1 Validation Error" in capsys.readouterr().out

    def test_get_sessions_within_scope(self, mup_context):
        scoped = mup_context.with_sessions(["app"])
        names = [s.name for s in scoped.get_sessions(["app", "db"])]
        assert names == ["one", "two"]

    def test_nested_views_only_narrow(self, mup_context):
        nested = mup_context.with_sessions(["app"]).with_sessions(["db"])
        assert list(nested.sessions) == ["two"]
        assert nested.root is mup_context

    def test_root_sessions_unchanged(self, mup_context):
        mup_context.with_sessions(["app"])
        assert list(mup_context.sessions) == ["one", "two", "three"]

    def test_run_task_passes_view(self, mup_context, tasks):
        seen = []

        async def deploy(ctx):
            seen.append(ctx)

        tasks.register("deploy", deploy)
        scoped = mup_context.with_sessions(["app"])
        assert run_sync(scoped.run_task("deploy")) is True
        assert seen == [scoped]
