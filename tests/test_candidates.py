"""Tests for image candidate URL generation."""

import pytest

from scraper_service.ingest.candidates import (
    build_candidates,
    is_cdn_host,
    normalize_url,
    upgrade_size,
)

SHEIN_THUMB = (
    "https://img.ltwebstatic.com/images3_pi/2024/01/02/ab/1704_thumbnail_200x.jpg?imwidth=200"
)


class TestNormalizeUrl:
    """Test URL normalization."""

    def test_scheme_relative_becomes_https(self):
        assert normalize_url("//img.ltwebstatic.com/a.jpg") == "https://img.ltwebstatic.com/a.jpg"

    def test_cdn_query_preserved(self):
        assert normalize_url(SHEIN_THUMB) == SHEIN_THUMB

    def test_non_cdn_query_stripped(self):
        assert normalize_url("https://cdn.example.com/a.jpg?w=400#top") == "https://cdn.example.com/a.jpg"

    def test_unparseable_returned_as_is(self):
        assert normalize_url("not a url") == "not a url"

    def test_is_cdn_host(self):
        assert is_cdn_host("img.ltwebstatic.com")
        assert is_cdn_host("sheinsz.ltwebstatic.com")
        assert is_cdn_host("IMG.SHEINCDN.COM")
        assert not is_cdn_host("cdn.example.com")
        assert not is_cdn_host(None)


class TestUpgradeSize:
    """Test size token rewriting."""

    @pytest.mark.parametrize("token", ["_200x", "_300x", "_400x"])
    def test_known_tokens_replaced(self, token):
        assert upgrade_size(f"/img/a{token}.jpg", "750x") == "/img/a_750x.jpg"

    def test_extension_suffix_added(self):
        assert upgrade_size("/img/a.webp", "1000x") == "/img/a_1000x.webp"

    def test_no_extension_unchanged(self):
        assert upgrade_size("/img/photo", "750x") == "/img/photo"

    def test_dot_in_directory_only_unchanged(self):
        assert upgrade_size("/v1.2/photo", "750x") == "/v1.2/photo"

    def test_idempotent(self):
        once = upgrade_size("/img/a.jpg", "750x")
        twice = upgrade_size(once, "750x")
        assert once == twice == "/img/a_750x.jpg"

    def test_already_upgraded_not_doubly_suffixed(self):
        assert upgrade_size("/img/a_750x.jpg", "1000x") == "/img/a_750x.jpg"
        assert upgrade_size("/img/a_1000x.jpg", "750x") == "/img/a_1000x.jpg"


class TestBuildCandidates:
    """Test candidate list generation."""

    def test_cdn_url_with_query_order(self):
        base = "https://img.ltwebstatic.com/images3_pi/2024/01/02/ab/1704_thumbnail"
        assert build_candidates(SHEIN_THUMB) == (
            SHEIN_THUMB,
            f"{base}_1000x.jpg?imwidth=200",
            f"{base}_750x.jpg?imwidth=200",
            f"{base}_200x.jpg",
            f"{base}_1000x.jpg",
            f"{base}_750x.jpg",
        )

    def test_non_cdn_query_stripped_everywhere(self):
        candidates = build_candidates("https://cdn.example.com/img_300x.png?v=3")
        assert candidates == (
            "https://cdn.example.com/img_300x.png",
            "https://cdn.example.com/img_1000x.png",
            "https://cdn.example.com/img_750x.png",
        )
        assert all("?" not in c for c in candidates)

    def test_cdn_query_preserved_in_some_candidate(self):
        candidates = build_candidates(SHEIN_THUMB)
        assert any("?imwidth=200" in c for c in candidates)

    def test_http_upgraded_to_https_last(self):
        candidates = build_candidates("http://cdn.example.com/a.jpg")
        assert candidates[0] == "http://cdn.example.com/a.jpg"
        assert candidates[-1] == "https://cdn.example.com/a.jpg"
        assert sum(c.startswith("https://") for c in candidates) == 1

    def test_scheme_relative_input(self):
        candidates = build_candidates("//img.ltwebstatic.com/x_400x.webp")
        assert candidates[0] == "https://img.ltwebstatic.com/x_400x.webp"
        assert "https://img.ltwebstatic.com/x_1000x.webp" in candidates

    def test_already_upgraded_url_single_candidate(self):
        assert build_candidates("https://cdn.example.com/img_750x.jpg") == (
            "https://cdn.example.com/img_750x.jpg",
        )

    @pytest.mark.parametrize("raw", [
        SHEIN_THUMB,
        "http://cdn.example.com/a_200x.jpg?x=1",
        "//img.ltwebstatic.com/a.png",
        "https://cdn.example.com/photo",
        "not a url",
    ])
    def test_deterministic_and_unique(self, raw):
        first = build_candidates(raw)
        second = build_candidates(raw)
        assert first == second
        assert len(first) == len(set(first))
        assert all("_750x_750x" not in c and "_1000x_1000x" not in c for c in first)
