import pytest

from ingestion.utils.normalize import (
    kebab_case,
    normalize_email,
    transform_facebook_url,
    transform_instagram_url,
    transform_twitter_url,
)


class TestTwitter:
    @pytest.mark.parametrize(
        "raw",
        [
            "@f3nashville",
            "f3nashville",
            "https://twitter.com/f3nashville",
            "https://www.x.com/f3nashville/",
            "twitter.com/#!/f3nashville",
            "https://x.com/f3nashville/status/12345",
            "https://twitter.com/f3nashville?lang=en",
        ],
    )
    def test_canonical_form(self, raw):
        assert transform_twitter_url(raw) == "https://x.com/f3nashville"

    @pytest.mark.parametrize("raw", ["@foo", "x.com/foo", "twitter.com/foo/"])
    def test_short_forms_agree(self, raw):
        assert transform_twitter_url(raw) == "https://x.com/foo"

    @pytest.mark.parametrize(
        "raw", [None, "", "   ", "not a handle", "not a handle!!", "https://example.com/foo"]
    )
    def test_rejects(self, raw):
        assert transform_twitter_url(raw) is None


class TestFacebook:
    def test_group_url(self):
        assert (
            transform_facebook_url("https://www.facebook.com/groups/f3nashville/")
            == "https://facebook.com/groups/f3nashville"
        )

    def test_page_url(self):
        assert transform_facebook_url("facebook.com/F3Nashville") == "https://facebook.com/F3Nashville"

    def test_profile_php_passes_through(self):
        url = "https://www.facebook.com/profile.php?id=100064"
        assert transform_facebook_url(url) == url

    def test_groups_are_not_mistaken_for_pages(self):
        assert transform_facebook_url("facebook.com/groups/abc") == "https://facebook.com/groups/abc"

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "",
            "https://example.com/f3",
            "f3nashville",
            "https://notfacebook.com/foo",
            "see facebook.com/x please",
        ],
    )
    def test_rejects(self, raw):
        assert transform_facebook_url(raw) is None


class TestInstagram:
    @pytest.mark.parametrize(
        "raw", ["@f3.nashville", "f3.nashville", "https://www.instagram.com/f3.nashville/"]
    )
    def test_canonical_form(self, raw):
        assert transform_instagram_url(raw) == "https://instagram.com/f3.nashville"

    @pytest.mark.parametrize("raw", [None, "", "two words"])
    def test_rejects(self, raw):
        assert transform_instagram_url(raw) is None


class TestEmail:
    def test_trims(self):
        assert normalize_email("  nant@f3nation.com ") == "nant@f3nation.com"

    @pytest.mark.parametrize("raw", [None, "", "  ", "no-at-sign"])
    def test_rejects(self, raw):
        assert normalize_email(raw) is None


class TestKebabCase:
    @pytest.mark.parametrize(
        "name,slug",
        [
            ("Nashville", "nashville"),
            ("The Wall", "the-wall"),
            ("F3 Nation", "f-3-nation"),
            ("CrossFit Park", "cross-fit-park"),
            ("São Paulo", "sao-paulo"),
            ("  Spaced   Out  ", "spaced-out"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_slugs(self, name, slug):
        assert kebab_case(name) == slug
