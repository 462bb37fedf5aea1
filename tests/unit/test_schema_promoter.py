"""
Unit tests for the schema promoter CLI and its configuration.
"""

import pytest
from click.testing import CliRunner

import schema_promoter
from fakes import FakeRegistry
from promotion import CompatibilityLevel, PromotionSummary
from schema_promoter import ConfigError, build_config, promote, run_promotion
from schema_registry import RegistryTransportError

SOURCE_URL = "https://dev-psrc.example"
TARGET_URL = "https://qa-psrc.example"
ORDERS = '{"type":"record","name":"Order","fields":[{"name":"id","type":"string"}]}'
USERS = '{"type":"record","name":"User","fields":[{"name":"id","type":"string"}]}'

BASE_ARGS = [
    "--source-url", SOURCE_URL,
    "--source-api-key", "DEVKEY",
    "--source-api-secret", "DEVSECRET",
    "--target-url", TARGET_URL,
    "--target-api-key", "QAKEY",
    "--target-api-secret", "QASECRET",
    "--compatibility", "backward",
    "--delay", "0",
]


@pytest.fixture
def registries(monkeypatch):
    """Source and target fakes served to the promoter in place of real clients."""
    pair = {
        SOURCE_URL: FakeRegistry(SOURCE_URL, {"orders-value": ORDERS, "users-value": USERS}),
        TARGET_URL: FakeRegistry(TARGET_URL, {"users-value": USERS}),
    }
    monkeypatch.setattr(schema_promoter, "SchemaRegistry", lambda endpoint: pair[endpoint.url])
    return pair


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "SOURCE_SCHEMA_REGISTRY_URL",
        "SOURCE_SCHEMA_REGISTRY_API_KEY",
        "SOURCE_SCHEMA_REGISTRY_API_SECRET",
        "TARGET_SCHEMA_REGISTRY_URL",
        "TARGET_SCHEMA_REGISTRY_API_KEY",
        "TARGET_SCHEMA_REGISTRY_API_SECRET",
        "SCHEMA_COMPATIBILITY_LEVEL",
        "SCHEMA_PROMOTION_SUBJECTS",
        "SCHEMA_PROMOTION_LOG_FILE",
        "SCHEMA_PROMOTION_DELAY_SECONDS",
        "SCHEMA_PROMOTION_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)


class TestBuildConfig:
    """Tests for settings validation."""

    def test_valid_settings(self, tmp_path):
        config = build_config(
            SOURCE_URL, TARGET_URL, "k", "s", "k2", "s2",
            compatibility="full",
            subjects="orders-value users-value",
            log_file=tmp_path / "run.log",
        )

        assert config.compatibility is CompatibilityLevel.FULL
        assert config.subjects == ("orders-value", "users-value")
        assert config.source.client_config()["basic.auth.user.info"] == "k:s"
        assert config.delay_seconds == 0.5

    def test_no_subjects_means_discovery(self):
        assert build_config(SOURCE_URL, TARGET_URL).subjects is None

    def test_empty_subject_string_is_an_empty_list(self):
        assert build_config(SOURCE_URL, TARGET_URL, subjects="").subjects == ()

    @pytest.mark.parametrize("url", ["", "dev-psrc.example", "ftp://dev-psrc.example"])
    def test_bad_source_url_is_rejected(self, url):
        with pytest.raises(ConfigError, match="source Schema Registry URL"):
            build_config(url, TARGET_URL)

    def test_unknown_compatibility_is_rejected(self):
        with pytest.raises(ConfigError, match="Invalid compatibility level"):
            build_config(SOURCE_URL, TARGET_URL, compatibility="SIDEWAYS")

    def test_negative_delay_is_rejected(self):
        with pytest.raises(ConfigError, match="delay_seconds"):
            build_config(SOURCE_URL, TARGET_URL, delay_seconds=-1)

    def test_config_is_hashable(self):
        first = build_config(SOURCE_URL, TARGET_URL, "k", "s", subjects="orders-value")
        second = build_config(SOURCE_URL + "/", TARGET_URL, "k", "s", subjects="orders-value")

        assert first == second
        assert hash(first) == hash(second)


class TestEnvironmentSettings:
    """Tests for settings taken from environment variables by the promote command."""

    @pytest.fixture
    def captured(self, monkeypatch):
        """Stub the run and record the PromotionConfig it was given."""
        seen = []

        def fake_run(config, registry_factory=None):
            seen.append(config)
            return PromotionSummary()

        monkeypatch.setattr(schema_promoter, "run_promotion", fake_run)
        return seen

    def test_reads_every_setting(self, clean_env, captured, tmp_path):
        env = {
            "SOURCE_SCHEMA_REGISTRY_URL": SOURCE_URL,
            "SOURCE_SCHEMA_REGISTRY_API_KEY": "DEVKEY",
            "SOURCE_SCHEMA_REGISTRY_API_SECRET": "DEVSECRET",
            "TARGET_SCHEMA_REGISTRY_URL": TARGET_URL,
            "TARGET_SCHEMA_REGISTRY_API_KEY": "QAKEY",
            "TARGET_SCHEMA_REGISTRY_API_SECRET": "QASECRET",
            "SCHEMA_COMPATIBILITY_LEVEL": "forward_transitive",
            "SCHEMA_PROMOTION_SUBJECTS": "orders-value",
            "SCHEMA_PROMOTION_LOG_FILE": str(tmp_path / "env.log"),
            "SCHEMA_PROMOTION_DELAY_SECONDS": "1.5",
            "SCHEMA_PROMOTION_DEBUG": "true",
        }

        result = CliRunner().invoke(promote, [], env=env)

        assert result.exit_code == 0, result.output
        config = captured[0]
        assert config.source.url == SOURCE_URL
        assert config.target.api_key == "QAKEY"
        assert config.compatibility is CompatibilityLevel.FORWARD_TRANSITIVE
        assert config.subjects == ("orders-value",)
        assert config.log_file == tmp_path / "env.log"
        assert config.delay_seconds == 1.5
        assert config.debug is True

    def test_defaults(self, clean_env, captured, tmp_path):
        env = {
            "SOURCE_SCHEMA_REGISTRY_URL": SOURCE_URL,
            "SOURCE_SCHEMA_REGISTRY_API_KEY": "DEVKEY",
            "SOURCE_SCHEMA_REGISTRY_API_SECRET": "DEVSECRET",
            "TARGET_SCHEMA_REGISTRY_URL": TARGET_URL,
            "TARGET_SCHEMA_REGISTRY_API_KEY": "QAKEY",
            "TARGET_SCHEMA_REGISTRY_API_SECRET": "QASECRET",
        }
        runner = CliRunner()

        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(promote, [], env=env, input="\nn\n")

        assert result.exit_code == 0, result.output
        config = captured[0]
        assert config.compatibility is CompatibilityLevel.BACKWARD
        assert config.subjects is None
        assert str(config.log_file) == "schema_promotion.log"
        assert config.delay_seconds == 0.5
        assert config.debug is False

    def test_malformed_delay_is_a_usage_error(self, clean_env, captured):
        result = CliRunner().invoke(
            promote, BASE_ARGS[:-2] + ["--all-subjects"], env={"SCHEMA_PROMOTION_DELAY_SECONDS": "soon"}
        )

        assert result.exit_code == 2
        assert captured == []


class TestRunPromotion:
    """Tests for the end-to-end run."""

    def test_run_with_factory(self, registries):
        config = build_config(SOURCE_URL, TARGET_URL, delay_seconds=0)

        summary = run_promotion(config, registry_factory=lambda endpoint: registries[endpoint.url])

        assert (summary.success, summary.failure, summary.skip) == (1, 0, 1)
        assert registries[TARGET_URL].schemas["orders-value"] == ORDERS

    def test_discovery_failure_propagates(self, registries):
        registries[SOURCE_URL].list_error = RegistryTransportError("list_subjects", None, "connection refused")

        with pytest.raises(RegistryTransportError):
            run_promotion(build_config(SOURCE_URL, TARGET_URL, delay_seconds=0))

        assert registries[TARGET_URL].calls == []


class TestPromoteCommand:
    """Tests for the schema-promoter command line."""

    def test_all_subjects_run(self, registries, clean_env, tmp_path):
        log_file = tmp_path / "promotion.log"

        result = CliRunner().invoke(promote, BASE_ARGS + ["--all-subjects", "--log-file", str(log_file)])

        assert result.exit_code == 0, result.output
        assert "Successful: 1" in result.output
        assert "Failed: 0" in result.output
        assert "Skipped: 1" in result.output
        assert f"Check {log_file} for detailed information" in result.output

        log_text = log_file.read_text(encoding="utf-8")
        assert "Starting schema promotion" in log_text
        assert "Schema promotion completed. Successful: 1, Failed: 0, Skipped: 1" in log_text

    def test_explicit_subjects_skip_discovery(self, registries, clean_env, tmp_path):
        result = CliRunner().invoke(
            promote, BASE_ARGS + ["--subjects", "orders-value", "--log-file", str(tmp_path / "run.log")]
        )

        assert result.exit_code == 0, result.output
        assert "list_subjects" not in registries[SOURCE_URL].operations()
        assert registries[TARGET_URL].operations("users-value") == []

    def test_subjects_prompt(self, registries, clean_env, tmp_path):
        result = CliRunner().invoke(
            promote,
            BASE_ARGS + ["--log-file", str(tmp_path / "run.log")],
            input="y\nusers-value\n",
        )

        assert result.exit_code == 0, result.output
        assert "Do you want to specify subjects?" in result.output
        assert "Skipped: 1" in result.output
        assert "list_subjects" not in registries[SOURCE_URL].operations()

    def test_declining_subjects_prompt_promotes_everything(self, registries, clean_env, tmp_path):
        result = CliRunner().invoke(promote, BASE_ARGS + ["--log-file", str(tmp_path / "run.log")], input="n\n")

        assert result.exit_code == 0, result.output
        assert "list_subjects" in registries[SOURCE_URL].operations()

    def test_discovery_failure_exits_1(self, registries, clean_env, tmp_path):
        registries[SOURCE_URL].list_error = RegistryTransportError("list_subjects", None, "connection refused")
        log_file = tmp_path / "run.log"

        result = CliRunner().invoke(promote, BASE_ARGS + ["--all-subjects", "--log-file", str(log_file)])

        assert result.exit_code == 1
        assert registries[TARGET_URL].calls == []
        assert "Failed to fetch subjects from source environment" in log_file.read_text(encoding="utf-8")

    def test_bad_url_is_a_usage_error(self, registries, clean_env, tmp_path):
        args = list(BASE_ARGS)
        args[args.index(SOURCE_URL)] = "dev-psrc.example"

        result = CliRunner().invoke(promote, args + ["--all-subjects", "--log-file", str(tmp_path / "run.log")])

        assert result.exit_code == 2
        assert "must start with http:// or https://" in result.output
