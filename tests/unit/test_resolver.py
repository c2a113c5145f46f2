"""
Unit tests for path resolution.

The resolver is a pure function, so these tests need no fixtures beyond
configs: no backend, no HTTP, no event loop.
"""

import pytest

from s3_proxy.core.routing import (
    InvalidEncoding,
    MissingBucket,
    MissingKey,
    PrefixMismatch,
    ProxyConfig,
    ResolvedTarget,
    RouteError,
    resolve,
    split_path,
)


@pytest.fixture
def bucket_only() -> ProxyConfig:
    return ProxyConfig(bucket="assets")


@pytest.fixture
def prefix_only() -> ProxyConfig:
    return ProxyConfig(url_prefix="p")


@pytest.fixture
def prefix_and_bucket() -> ProxyConfig:
    return ProxyConfig(bucket="my-bucket", url_prefix="files")


@pytest.fixture
def neither() -> ProxyConfig:
    return ProxyConfig()


# ---------------------------------------------------------------------------
# Configuration Combinations
# ---------------------------------------------------------------------------

class TestBucketConfigured:
    """Fixed bucket, no prefix: the whole path is the key."""

    def test_whole_path_is_key(self, bucket_only):
        target = resolve("/k1/k2", bucket_only)
        assert target == ResolvedTarget(bucket="assets", key="k1/k2")

    def test_single_segment_key(self, bucket_only):
        assert resolve("/index.html", bucket_only).key == "index.html"

    def test_root_has_no_key(self, bucket_only):
        with pytest.raises(MissingKey):
            resolve("/", bucket_only)


class TestPrefixConfigured:
    """Prefix, no bucket: /prefix/bucket/key..."""

    def test_bucket_follows_prefix(self, prefix_only):
        assert resolve("/p/b/k", prefix_only) == ResolvedTarget(bucket="b", key="k")

    def test_wrong_prefix_is_rejected(self, prefix_only):
        with pytest.raises(PrefixMismatch):
            resolve("/q/b/k", prefix_only)

    def test_prefix_is_case_sensitive(self, prefix_only):
        with pytest.raises(PrefixMismatch):
            resolve("/P/b/k", prefix_only)

    def test_prefix_must_be_a_whole_segment(self, prefix_only):
        with pytest.raises(PrefixMismatch):
            resolve("/pp/b/k", prefix_only)

    def test_empty_path_is_prefix_mismatch(self, prefix_only):
        with pytest.raises(PrefixMismatch):
            resolve("/", prefix_only)

    def test_prefix_alone_has_no_bucket(self, prefix_only):
        with pytest.raises(MissingBucket):
            resolve("/p", prefix_only)

    def test_prefix_and_bucket_without_key(self, prefix_only):
        with pytest.raises(MissingKey):
            resolve("/p/b", prefix_only)


class TestPrefixAndBucketConfigured:
    """Both configured: /prefix/key..."""

    def test_key_follows_prefix(self, prefix_and_bucket):
        target = resolve("/files/a/b.txt", prefix_and_bucket)
        assert target == ResolvedTarget(bucket="my-bucket", key="a/b.txt")

    def test_no_segment_is_consumed_for_bucket(self, prefix_and_bucket):
        target = resolve("/files/other-bucket/x", prefix_and_bucket)
        assert target.bucket == "my-bucket"
        assert target.key == "other-bucket/x"

    def test_prefix_alone_has_no_key(self, prefix_and_bucket):
        with pytest.raises(MissingKey):
            resolve("/files", prefix_and_bucket)

    def test_wrong_prefix_is_rejected(self, prefix_and_bucket):
        with pytest.raises(PrefixMismatch):
            resolve("/wrong-prefix/x", prefix_and_bucket)


class TestNothingConfigured:
    """Neither configured: /bucket/key..."""

    def test_first_segment_is_bucket(self, neither):
        assert resolve("/b/k1/k2", neither) == ResolvedTarget(bucket="b", key="k1/k2")

    def test_bucket_without_key(self, neither):
        with pytest.raises(MissingKey):
            resolve("/b", neither)

    def test_empty_path_has_no_bucket(self, neither):
        with pytest.raises(MissingBucket):
            resolve("/", neither)


# ---------------------------------------------------------------------------
# Path Normalisation
# ---------------------------------------------------------------------------

class TestPathNormalisation:
    """Slashes, encoding and query strings."""

    @pytest.mark.parametrize("path", ["/b/k", "/b/dir/k.txt", "/b/a/b/c/d"])
    def test_trailing_slash_is_ignored(self, neither, path):
        assert resolve(path, neither) == resolve(path + "/", neither)

    def test_doubled_slashes_are_collapsed(self, neither):
        assert resolve("//b//a///c", neither) == ResolvedTarget(bucket="b", key="a/c")

    def test_segments_are_percent_decoded(self, neither):
        target = resolve("/b/my%20file%E2%9C%93.txt", neither)
        assert target.key == "my file✓.txt"

    def test_decoding_happens_once(self, neither):
        # %2541 is an encoded "%41"; decoding twice would give "A"
        assert resolve("/b/x%2541", neither).key == "x%41"

    def test_encoded_slash_stays_in_segment(self, prefix_only):
        # Decoding after splitting: %2F can't create a new path segment
        target = resolve("/p/b/a%2Fb", prefix_only)
        assert target == ResolvedTarget(bucket="b", key="a/b")

    def test_encoded_slash_in_prefix_position_does_not_match(self, prefix_only):
        with pytest.raises(PrefixMismatch):
            resolve("/p%2Fb/k", prefix_only)

    def test_query_string_is_ignored(self, bucket_only):
        assert resolve("/a/b.txt?versionId=3", bucket_only).key == "a/b.txt"

    def test_split_path_drops_empty_segments(self):
        assert split_path("/a//b/") == ["a", "b"]

    def test_unescaped_utf8_is_kept(self, neither):
        assert resolve("/b/héllo.txt", neither).key == "héllo.txt"

    @pytest.mark.parametrize("path", ["/b/%FF.txt", "/b/ok/%C3", "/%E9/k"])
    def test_invalid_utf8_is_rejected(self, neither, path):
        with pytest.raises(InvalidEncoding) as excinfo:
            resolve(path, neither)
        assert excinfo.value.path == path

    def test_invalid_encoding_is_a_route_error(self, bucket_only):
        with pytest.raises(RouteError):
            resolve("/%FF", bucket_only)


class TestResolverProperties:
    """Properties that hold for every configuration."""

    @pytest.mark.parametrize(
        "config",
        [
            ProxyConfig(),
            ProxyConfig(bucket="x"),
            ProxyConfig(url_prefix="p"),
            ProxyConfig(bucket="x", url_prefix="p"),
        ],
    )
    def test_resolution_is_idempotent(self, config):
        path = "/p/b/k/v.bin"
        assert resolve(path, config) == resolve(path, config)

    def test_route_errors_share_a_base_class(self, neither):
        with pytest.raises(RouteError) as excinfo:
            resolve("/", neither)
        assert excinfo.value.path == "/"

    def test_resolved_target_uri(self):
        assert ResolvedTarget(bucket="b", key="a/c").uri == "s3://b/a/c"


class TestProxyConfig:
    """Normalisation of static configuration."""

    def test_empty_strings_mean_unset(self):
        config = ProxyConfig(bucket="", url_prefix="")
        assert config.bucket is None
        assert config.url_prefix is None

    def test_prefix_slashes_are_stripped(self):
        assert ProxyConfig(url_prefix="/files/").url_prefix == "files"

    @pytest.mark.parametrize(
        "config, template",
        [
            (ProxyConfig(bucket="x"), "/{key...}"),
            (ProxyConfig(), "/{bucket}/{key...}"),
            (ProxyConfig(bucket="x", url_prefix="p"), "/p/{key...}"),
            (ProxyConfig(url_prefix="p"), "/p/{bucket}/{key...}"),
        ],
    )
    def test_route_template(self, config, template):
        assert config.route_template == template
