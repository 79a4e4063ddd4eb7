"""
URL resolution tests.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from pricewatch.catalog.urls import UrlResolver, extract_product_id, is_valid_product_id


def _redirect(location: str) -> Mock:
    response = Mock()
    response.status_code = 301
    response.headers = {"Location": location}
    return response


class TestExtractProductId:
    """Test identifier extraction from product URLs."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.amazon.com.br/dp/B012345678",
            "https://www.amazon.com.br/Some-Title/dp/B012345678/ref=sr_1_1",
            "https://www.amazon.com.br/gp/product/B012345678?th=1",
            "https://www.amazon.com.br/product/b012345678",
        ],
    )
    def test_supported_paths(self, url):
        """Should find the identifier and upper-case it."""
        assert extract_product_id(url) == "B012345678"

    def test_no_product_path(self):
        """Should return None for non-product pages."""
        assert extract_product_id("https://www.amazon.com.br/s?k=sandman") is None
        assert extract_product_id("") is None

    def test_is_valid_product_id(self):
        """Should require exactly ten alphanumerics."""
        assert is_valid_product_id("B012345678") is True
        assert is_valid_product_id("B01234567") is False
        assert is_valid_product_id("B0123456789") is False
        assert is_valid_product_id("b012345678") is False


class TestUrlResolver:
    """Test short link resolution."""

    @pytest.fixture
    def resolver(self):
        return UrlResolver(max_redirects=3)

    def test_invalid_url(self, resolver: UrlResolver):
        """Should reject strings that are not http URLs."""
        result = resolver.resolve("not a url")

        assert result.success is False
        assert result.error == "Invalid URL"

    def test_catalog_url_returned_directly(self, resolver: UrlResolver):
        """Should not make requests for catalog URLs."""
        with patch("requests.head") as mock_head:
            result = resolver.resolve("https://www.amazon.com.br/dp/B012345678")

        assert result.success is True
        assert result.is_catalog_url is True
        assert result.final_url == "https://www.amazon.com.br/dp/B012345678"
        mock_head.assert_not_called()

    def test_unknown_domain_is_not_catalog(self, resolver: UrlResolver):
        """Should succeed but flag the URL as outside the catalog."""
        result = resolver.resolve("https://example.org/dp/B012345678")

        assert result.success is True
        assert result.is_catalog_url is False

    def test_follows_short_link(self, resolver: UrlResolver):
        """Should follow redirects until a catalog URL is reached."""
        with patch("requests.head") as mock_head:
            mock_head.side_effect = [
                _redirect("https://amzlink.to/next"),
                _redirect("https://www.amazon.com.br/dp/B012345678?tag=x"),
            ]
            result = resolver.resolve("https://amzn.to/abc")

        assert result.success is True
        assert result.is_catalog_url is True
        assert result.final_url == "https://www.amazon.com.br/dp/B012345678?tag=x"
        assert mock_head.call_count == 2
        assert mock_head.call_args.kwargs["allow_redirects"] is False

    def test_too_many_redirects(self, resolver: UrlResolver):
        """Should give up after max_redirects hops."""
        with patch("requests.head") as mock_head:
            mock_head.return_value = _redirect("https://amzn.to/loop")
            result = resolver.resolve("https://amzn.to/abc")

        assert result.success is False
        assert result.error == "Too many redirects"
        assert mock_head.call_count == 3

    def test_request_error(self, resolver: UrlResolver):
        """Should report connection failures."""
        with patch("requests.head") as mock_head:
            mock_head.side_effect = requests.exceptions.ConnectionError("down")
            result = resolver.resolve("https://amzn.to/abc")

        assert result.success is False
        assert "down" in result.error

    def test_short_link_to_other_site(self, resolver: UrlResolver):
        """Should flag short links that end outside the catalog."""
        final = Mock(status_code=200, headers={})
        with patch("requests.head") as mock_head:
            mock_head.side_effect = [_redirect("https://example.org/page"), final]
            result = resolver.resolve("https://a.co/abc")

        assert result.success is True
        assert result.is_catalog_url is False
        assert result.final_url == "https://example.org/page"

    def test_subdomains_match(self):
        """Should accept subdomains of configured domains."""
        resolver = UrlResolver(catalog_domains=["shop.example"])
        assert resolver.is_catalog_domain("www.shop.example") is True
        assert resolver.is_catalog_domain("evilshop.example") is False
