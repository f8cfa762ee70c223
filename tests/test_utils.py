"""Tests for utility modules."""

from datetime import datetime, timedelta, timezone

import pytest

from bucketfs.protocols import Clock, ContentTypeResolver
from bucketfs.utils import (
    FixedClock,
    MimetypesContentTypeResolver,
    SystemClock,
    normalize_prefix,
    validate_bucket_name,
)


class TestValidateBucketName:
    """Tests for validate_bucket_name."""

    @pytest.mark.parametrize("name", ["media-bucket", "abc", "my.bucket.2024"])
    def test_valid_names(self, name):
        """Test that valid names are returned unchanged."""
        assert validate_bucket_name(name) == name

    @pytest.mark.parametrize(
        "name",
        ["", "ab", "Media", "under_score", "-leading", "trailing-", "a..b", "192.168.0.1", "x" * 64],
    )
    def test_invalid_names(self, name):
        """Test that invalid names raise ValueError."""
        with pytest.raises(ValueError):
            validate_bucket_name(name)


class TestNormalizePrefix:
    """Tests for normalize_prefix."""

    def test_adds_delimiter(self):
        assert normalize_prefix("tenant1") == "tenant1/"

    def test_keeps_delimiter(self):
        assert normalize_prefix("tenant1/") == "tenant1/"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_is_none(self, value):
        assert normalize_prefix(value) is None


class TestContentTypes:
    """Tests for MimetypesContentTypeResolver."""

    def test_known_extension(self):
        """Test a type from the mimetypes registry."""
        resolver = MimetypesContentTypeResolver()
        assert resolver.guess("images/logo.png") == "image/png"

    def test_unknown_extension(self):
        """Test that an unknown extension yields None."""
        resolver = MimetypesContentTypeResolver()
        assert resolver.guess("blob.unknownext") is None
        assert resolver.guess("no-extension") is None

    def test_overrides_win(self):
        """Test that overrides take precedence and ignore case."""
        resolver = MimetypesContentTypeResolver({"png": "application/x-custom", ".MD": "text/markdown"})

        assert resolver.guess("a.PNG") == "application/x-custom"
        assert resolver.guess("docs/readme.md") == "text/markdown"

    def test_extension_only_from_file_name(self):
        """Test that dots in directory names are ignored."""
        resolver = MimetypesContentTypeResolver()
        assert resolver.guess("v1.2/README") is None

    def test_satisfies_protocol(self):
        assert isinstance(MimetypesContentTypeResolver(), ContentTypeResolver)


class TestClocks:
    """Tests for clock implementations."""

    def test_system_clock_is_utc(self):
        """Test that the system clock is timezone-aware UTC."""
        now = SystemClock().now()
        assert now.tzinfo is timezone.utc
        assert abs(datetime.now(timezone.utc) - now) < timedelta(seconds=5)

    def test_fixed_clock(self):
        """Test that the fixed clock never moves."""
        instant = datetime(2024, 1, 1, tzinfo=timezone.utc)
        clock = FixedClock(instant)
        assert clock.now() == instant
        assert clock.now() == instant

    def test_fixed_clock_assumes_utc(self):
        """Test that naive instants are taken as UTC."""
        clock = FixedClock(datetime(2024, 1, 1))
        assert clock.now().tzinfo is timezone.utc

    def test_satisfies_protocol(self):
        assert isinstance(SystemClock(), Clock)
        assert isinstance(FixedClock(datetime(2024, 1, 1)), Clock)
