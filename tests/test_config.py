"""Tests for settings loading and the resolution context built from them."""

from pathlib import Path

from xpkg.config import Settings, load_settings
from xpkg.package.models import Tier
from xpkg.repository.context import ResolutionContext
from xpkg.repository.extracted import ExtractedRepository
from xpkg.repository.filesystem import FileSystemRepository
from xpkg.repository.remote import RemoteDbRepository


class TestLoadSettings:

    def test_defaults_without_file(self, tmp_path):
        settings = load_settings(path=tmp_path / "missing.yml", environ={})
        assert settings == Settings()

    def test_yaml_file(self, tmp_path):
        config = tmp_path / "xpkg.yml"
        config.write_text(
            "remote_url: https://packages.example.com/api\n"
            "cache_dir: /var/cache/xpkg\n"
            "platform: x64\n"
            "unknown_key: whatever\n",
            encoding="utf-8",
        )
        settings = load_settings(environ={}, cwd=tmp_path)
        assert settings.remote_url == "https://packages.example.com/api"
        assert settings.cache_dir == "/var/cache/xpkg"
        assert settings.platform == "x64"
        assert settings.remote_is_http

    def test_environment_overrides_file(self, tmp_path):
        config = tmp_path / "settings.yml"
        config.write_text("platform: x64\nbranch: next\n", encoding="utf-8")
        settings = load_settings(path=config, environ={"XPKG_PLATFORM": "Win32", "XPKG_SHARE_DIR": "/share"})
        assert settings.platform == "Win32"
        assert settings.branch == "next"
        assert settings.share_dir == "/share"

    def test_malformed_file_is_skipped(self, tmp_path):
        config = tmp_path / "xpkg.yml"
        config.write_text("platform: [x64\n", encoding="utf-8")
        assert load_settings(path=config, environ={}) == Settings()

    def test_non_mapping_file_is_skipped(self, tmp_path):
        config = tmp_path / "xpkg.yml"
        config.write_text("- a\n- b\n", encoding="utf-8")
        assert load_settings(path=config, environ={}) == Settings()

    def test_describe_redacts_token(self):
        shown = Settings(remote_token="abcdefgh1234").describe()
        assert shown["remote_token"] == "********1234"


class TestResolutionContext:

    def test_http_remote(self, tmp_path):
        settings = Settings(
            remote_url="https://packages.example.com/api",
            cache_dir=str(tmp_path / "cache"),
            share_dir=str(tmp_path / "share"),
            root_dir=str(tmp_path / "work"),
        )
        context = ResolutionContext.from_settings(settings)

        assert isinstance(context.remote, RemoteDbRepository)
        assert isinstance(context.cache, FileSystemRepository)
        assert isinstance(context.share, ExtractedRepository)
        assert context.target.repo_dir == tmp_path / "work" / "target"
        assert context.local.tier == Tier.LOCAL
        assert set(context.repositories()) == {Tier.REMOTE, Tier.CACHE, Tier.SHARE, Tier.TARGET, Tier.LOCAL}

    def test_directory_remote_and_no_share(self, tmp_path):
        settings = Settings(remote_url=str(tmp_path / "remote"), cache_dir=str(tmp_path / "cache"), root_dir=str(tmp_path))
        context = ResolutionContext.from_settings(settings)

        assert isinstance(context.remote, FileSystemRepository)
        assert context.remote.require_root
        assert context.share is None
        assert context.repository(Tier.SHARE) is None
        assert context.root_dir == Path(tmp_path)
