"""
Tests for health config module.
"""

import json
from pathlib import Path

import pytest

from api_status_monitor.core.entities import EndpointSpec, HttpMethod
from api_status_monitor.health import checks, config


def _write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_config_json_defaults(self, tmp_path):
        """Test a minimal JSON config gets default settings."""
        config_path = _write_json(
            tmp_path / "status.json",
            {"endpoints": [{"name": "API", "url": "https://x/health"}]},
        )

        result = config.load_config(config_path)

        assert result.endpoints == [EndpointSpec(name="API", url="https://x/health")]
        assert result.timeout == checks.DEFAULT_TIMEOUT
        assert result.snapshot_path == Path(".status/previous-status.json")
        assert result.status_path == Path("status.json")
        assert result.webhook_env == "SLACK_WEBHOOK_URL"
        assert result.auth_headers == {}
        assert result.policy == checks.DEFAULT_POLICY

    def test_load_config_yaml(self, tmp_path):
        """Test YAML configs with payload mappings and lowercase methods."""
        path = tmp_path / "status.yaml"
        path.write_text(
            "timeout: 5\n"
            "snapshot_file: state/prev.json\n"
            "status_file: site/status.json\n"
            "notify:\n"
            "  webhook_env: OPS_WEBHOOK\n"
            "endpoints:\n"
            "  - name: Login\n"
            "    url: https://x/login\n"
            "    method: post\n"
            "    payload:\n"
            "      user: probe\n"
            "  - name: Delete\n"
            "    url: https://x/delete\n"
            "    method: DELETE\n",
            encoding="utf-8",
        )

        result = config.load_config(str(path))

        assert result.timeout == 5
        assert result.snapshot_path == Path("state/prev.json")
        assert result.status_path == Path("site/status.json")
        assert result.webhook_env == "OPS_WEBHOOK"
        login, delete = result.endpoints
        assert login.method is HttpMethod.POST
        assert json.loads(login.payload) == {"user": "probe"}
        assert delete.method is HttpMethod.DELETE
        assert delete.payload is None

    def test_load_config_top_level_list(self, tmp_path):
        """Test a bare list is read as the endpoints list."""
        config_path = _write_json(
            tmp_path / "status.json",
            [{"name": "A", "url": "https://a"}, {"name": "B", "url": "https://b"}],
        )

        result = config.load_config(config_path)

        assert [spec.name for spec in result.endpoints] == ["A", "B"]

    def test_load_config_skips_invalid_endpoints(self, tmp_path):
        """Test invalid and duplicate endpoints are skipped."""
        config_path = _write_json(
            tmp_path / "status.json",
            {
                "endpoints": [
                    {"name": "A", "url": "https://a"},
                    {"name": "NoUrl"},
                    {"url": "https://no-name"},
                    {"name": "Head", "url": "https://h", "method": "HEAD"},
                    {"name": "Bad", "url": "https://b", "method": "FETCH"},
                    {"name": "Payload", "url": "https://p", "method": "POST", "payload": 3},
                    {"name": "A", "url": "https://a2"},
                    "not a dict",
                    {"name": "C", "url": "https://c", "method": "patch"},
                ]
            },
        )

        result = config.load_config(config_path)

        assert [spec.name for spec in result.endpoints] == ["A", "C"]
        assert result.endpoints[0].url == "https://a"

    def test_load_config_skips_code_field_clash(self, tmp_path):
        """Test names colliding with a snapshot "_code" field are skipped."""
        config_path = _write_json(
            tmp_path / "status.json",
            {
                "endpoints": [
                    {"name": "svc", "url": "https://svc"},
                    {"name": "svc_code", "url": "https://svc-code"},
                    {"name": "db_code", "url": "https://db-code"},
                    {"name": "db", "url": "https://db"},
                    {"name": "zip_code", "url": "https://zip"},
                ]
            },
        )

        result = config.load_config(config_path)

        assert [spec.name for spec in result.endpoints] == ["svc", "db_code", "zip_code"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"snapshot_file": 5},
            {"snapshot_file": ""},
            {"status_file": ["status.json"]},
            {"notify": {"webhook_env": 42}},
        ],
    )
    def test_load_config_invalid_paths(self, tmp_path, overrides):
        """Test file locations and the webhook variable must be strings."""
        data = {"endpoints": [{"name": "A", "url": "https://a"}]}
        data.update(overrides)
        config_path = _write_json(tmp_path / "status.json", data)

        with pytest.raises(ValueError):
            config.load_config(config_path)

    def test_load_config_no_valid_endpoints(self, tmp_path):
        """Test a config without usable endpoints is rejected."""
        config_path = _write_json(tmp_path / "status.json", {"endpoints": [{"name": "A"}]})

        with pytest.raises(ValueError):
            config.load_config(config_path)

    def test_load_config_missing_file(self, tmp_path):
        """Test a missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            config.load_config(str(tmp_path / "missing.json"))

    def test_load_config_invalid_json(self, tmp_path):
        """Test malformed JSON raises ValueError."""
        path = tmp_path / "status.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError):
            config.load_config(str(path))

    def test_load_config_invalid_yaml(self, tmp_path):
        """Test malformed YAML raises ValueError."""
        path = tmp_path / "status.yaml"
        path.write_text("endpoints: [unclosed\n", encoding="utf-8")

        with pytest.raises(ValueError):
            config.load_config(str(path))

    @pytest.mark.parametrize("timeout", [0, -1, "10", True])
    def test_load_config_invalid_timeout(self, tmp_path, timeout):
        """Test non-positive or non-numeric timeouts are rejected."""
        config_path = _write_json(
            tmp_path / "status.json",
            {"timeout": timeout, "endpoints": [{"name": "A", "url": "https://a"}]},
        )

        with pytest.raises(ValueError):
            config.load_config(config_path)

    def test_load_config_classification_override(self, tmp_path):
        """Test the classification table can be overridden per family."""
        config_path = _write_json(
            tmp_path / "status.json",
            {
                "classification": {"read": ["200-299", 404]},
                "endpoints": [{"name": "A", "url": "https://a"}],
            },
        )

        result = config.load_config(config_path)

        assert result.policy.read == ((200, 299), (404, 404))
        assert result.policy.write == checks.DEFAULT_WRITE_OPERATIONAL
        assert checks.classify(404, HttpMethod.GET, result.policy).value == "operational"

    def test_load_config_auth_headers(self, tmp_path, monkeypatch):
        """Test auth header values come from the environment."""
        monkeypatch.setenv("PROBE_API_KEY", "k-123")
        config_path = _write_json(
            tmp_path / "status.json",
            {
                "auth": {"api_key_env": "PROBE_API_KEY"},
                "endpoints": [{"name": "A", "url": "https://a"}],
            },
        )

        result = config.load_config(config_path)

        assert result.auth_headers == {"X-API-Key": "k-123"}

    def test_load_config_example_file(self):
        """Test the shipped example config is valid."""
        example = Path(__file__).parents[3] / "configs" / "status.example.yaml"

        result = config.load_config(str(example))

        assert len(result.endpoints) > 0


class TestParseStatusRanges:
    """Tests for parse_status_ranges function."""

    def test_parse_status_ranges(self):
        """Test codes and ranges are normalized to tuples."""
        assert config.parse_status_ranges([200, "300-303", "404"]) == (
            (200, 200),
            (300, 303),
            (404, 404),
        )

    @pytest.mark.parametrize(
        "values", [["abc"], ["300-"], ["303-300"], [42], [700], [True], ["1-2-3"], "200"]
    )
    def test_parse_status_ranges_invalid(self, values):
        """Test malformed entries raise ValueError."""
        with pytest.raises(ValueError):
            config.parse_status_ranges(values)


class TestBuildAuthHeaders:
    """Tests for build_auth_headers function."""

    def test_build_auth_headers_empty(self):
        """Test no auth config means no headers."""
        assert config.build_auth_headers({}) == {}

    def test_build_auth_headers_unset_env(self, monkeypatch):
        """Test variables that are not set are ignored."""
        monkeypatch.delenv("MISSING_TOKEN", raising=False)
        assert config.build_auth_headers({"bearer_token_env": "MISSING_TOKEN"}) == {}

    def test_build_auth_headers_bearer(self, monkeypatch):
        """Test bearer tokens are prefixed."""
        monkeypatch.setenv("PROBE_TOKEN", "abc")
        headers = config.build_auth_headers({"bearer_token_env": "PROBE_TOKEN"})
        assert headers == {"Authorization": "Bearer abc"}

    def test_build_auth_headers_raw_authorization_wins(self, monkeypatch):
        """Test a raw Authorization value overrides the bearer token."""
        monkeypatch.setenv("PROBE_TOKEN", "abc")
        monkeypatch.setenv("PROBE_AUTH", "Basic dXNlcjpwYXNz")
        monkeypatch.setenv("PROBE_API_KEY", "k")

        headers = config.build_auth_headers(
            {
                "api_key_env": "PROBE_API_KEY",
                "bearer_token_env": "PROBE_TOKEN",
                "authorization_env": "PROBE_AUTH",
            }
        )

        assert headers == {"X-API-Key": "k", "Authorization": "Basic dXNlcjpwYXNz"}
