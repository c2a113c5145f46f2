"""
Unit tests for configuration loading.

Each test runs in an empty temporary directory (see conftest.py), so
files written by a test are the only config sources.
"""

from s3_proxy.config.settings import Settings


class TestSettingsSources:
    """Where values come from and which source wins."""

    def test_defaults(self):
        settings = Settings()

        assert settings.bucket is None
        assert settings.url_prefix is None
        assert settings.region == "us-east-1"
        assert settings.port == 8080
        assert settings.cache_control == "public, max-age=31536000"

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("S3_PROXY_BUCKET", "assets")
        monkeypatch.setenv("S3_PROXY_URL_PREFIX", "files")

        settings = Settings()

        assert settings.bucket == "assets"
        assert settings.url_prefix == "files"

    def test_toml_file(self, isolated_config):
        (isolated_config / "s3-proxy.toml").write_text(
            'host = "127.0.0.1"\n'
            "port = 9000\n"
            'bucket = "from-file"\n'
            'region = "eu-central-1"\n'
            'url_prefix = "static"\n'
        )

        settings = Settings()

        assert settings.host == "127.0.0.1"
        assert settings.port == 9000
        assert settings.bucket == "from-file"
        assert settings.region == "eu-central-1"
        assert settings.url_prefix == "static"

    def test_environment_overrides_toml(self, isolated_config, monkeypatch):
        (isolated_config / "s3-proxy.toml").write_text('bucket = "from-file"\n')
        monkeypatch.setenv("S3_PROXY_BUCKET", "from-env")

        assert Settings().bucket == "from-env"


class TestSettingsNormalisation:
    """Values are cleaned up before the resolver sees them."""

    def test_empty_values_mean_unset(self):
        settings = Settings(bucket="", url_prefix="  ")

        assert settings.bucket is None
        assert settings.url_prefix is None

    def test_prefix_slashes_are_stripped(self):
        assert Settings(url_prefix="/files/").url_prefix == "files"

    def test_health_path_gets_leading_slash(self):
        assert Settings(health_path="status/").health_path == "/status"

    def test_proxy_config(self):
        config = Settings(bucket="b", url_prefix="p", region="eu-west-1").proxy_config

        assert config.bucket == "b"
        assert config.url_prefix == "p"
        assert config.region == "eu-west-1"

    def test_storage_config(self):
        config = Settings(endpoint_url="http://minio:9000", chunk_size=1024).storage_config

        assert config.endpoint_url == "http://minio:9000"
        assert config.chunk_size == 1024


class TestValidateRequiredFields:
    def test_complete_configuration(self):
        assert Settings().validate_required_fields() == []

    def test_partial_credentials(self):
        problems = Settings(access_key_id="AKIA...").validate_required_fields()

        assert len(problems) == 1
        assert "SECRET_ACCESS_KEY" in problems[0]

    def test_mock_mode_skips_checks(self):
        assert Settings(access_key_id="x", mock_mode=True).validate_required_fields() == []
