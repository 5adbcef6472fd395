"""Unit tests for API key and base URL loading."""

from emoji_cutter.config import API_KEY_ENV, BASE_URL_ENV
from emoji_cutter.utils.env import load_api_key, load_base_url, read_env_file


class TestReadEnvFile:
    def test_missing_file(self, tmp_path):
        assert read_env_file(API_KEY_ENV, tmp_path / ".env") is None

    def test_quoted_value(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(f'# comment\n{API_KEY_ENV}="sk-test"\n', encoding="utf-8")
        assert read_env_file(API_KEY_ENV, env_file) == "sk-test"

    def test_placeholder_is_missing(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(f"{API_KEY_ENV}=your_key_here\n", encoding="utf-8")
        assert read_env_file(API_KEY_ENV, env_file) is None


class TestLoadApiKey:
    def test_environment_wins(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text(f"{API_KEY_ENV}=from-file\n", encoding="utf-8")
        monkeypatch.setenv(API_KEY_ENV, " from-env ")
        assert load_api_key(env_file) == "from-env"

    def test_file_fallback_sets_environment(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text(f"{API_KEY_ENV}=from-file\n", encoding="utf-8")
        monkeypatch.setenv(API_KEY_ENV, "")
        monkeypatch.delenv(API_KEY_ENV, raising=False)
        assert load_api_key(env_file) == "from-file"
        assert load_api_key(tmp_path / "missing.env") == "from-file"

    def test_not_found(self, tmp_path, monkeypatch):
        monkeypatch.delenv(API_KEY_ENV, raising=False)
        assert load_api_key(tmp_path / ".env") is None


class TestLoadBaseUrl:
    def test_from_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text(f"{BASE_URL_ENV}=https://api.example.com/v1\n", encoding="utf-8")
        monkeypatch.delenv(BASE_URL_ENV, raising=False)
        assert load_base_url(env_file) == "https://api.example.com/v1"
