"""
Product URL resolution and identifier extraction.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests

CATALOG_DOMAINS = [
    "amazon.com",
    "amazon.com.br",
    "amazon.co.uk",
    "amazon.de",
    "amazon.fr",
    "amazon.it",
    "amazon.es",
    "amazon.ca",
    "amazon.com.au",
    "amazon.co.jp",
    "amazon.in",
]

SHORT_URL_DOMAINS = [
    "amzn.to",
    "amzlink.to",
    "a.co",
]

PRODUCT_ID_LENGTH = 10

_PRODUCT_PATH_PATTERN = re.compile(
    r"(?:/dp/|/gp/product/|/product/)([A-Z0-9]+)", re.IGNORECASE
)
_PRODUCT_ID_PATTERN = re.compile(rf"^[A-Z0-9]{{{PRODUCT_ID_LENGTH}}}$")

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


@dataclass
class UrlResolution:
    """Outcome of resolving a possibly shortened URL."""

    final_url: Optional[str]
    is_catalog_url: bool
    success: bool
    error: Optional[str] = None


def extract_product_id(url: str) -> Optional[str]:
    """
    Extract the product identifier from a catalog URL.

    Supports:
        - amazon.com.br/dp/ID
        - amazon.com.br/gp/product/ID
        - amazon.com.br/product/ID

    Args:
        url: Catalog URL

    Returns:
        Upper-cased identifier, or None if the URL has no product path
    """
    if not url:
        return None

    match = _PRODUCT_PATH_PATTERN.search(url)
    if not match:
        return None

    return match.group(1).upper()


def is_valid_product_id(product_id: str) -> bool:
    """Identifiers are exactly ten upper-case alphanumerics."""
    return bool(_PRODUCT_ID_PATTERN.match(product_id or ""))


def _matches_domain(hostname: str, domains: list[str]) -> bool:
    hostname = hostname.lower()
    return any(hostname == d or hostname.endswith(f".{d}") for d in domains)


class UrlResolver:
    """Follows short-link redirects until a catalog URL is reached."""

    def __init__(
        self,
        catalog_domains: Optional[list[str]] = None,
        short_domains: Optional[list[str]] = None,
        max_redirects: int = 10,
        timeout: float = 10,
    ):
        self.catalog_domains = catalog_domains or CATALOG_DOMAINS
        self.short_domains = short_domains or SHORT_URL_DOMAINS
        self.max_redirects = max_redirects
        self.timeout = timeout

    def is_catalog_domain(self, hostname: str) -> bool:
        return _matches_domain(hostname, self.catalog_domains)

    def is_short_domain(self, hostname: str) -> bool:
        return _matches_domain(hostname, self.short_domains)

    def resolve(self, url: str) -> UrlResolution:
        """
        Resolve a URL to its final destination.

        Catalog URLs are returned as-is. Known short links are followed
        with HEAD requests. Anything else resolves successfully but is
        flagged as not belonging to the catalog.

        Args:
            url: URL submitted by the user

        Returns:
            UrlResolution with the final URL and whether it is a catalog URL
        """
        parsed = urlparse((url or "").strip())
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return UrlResolution(None, False, False, "Invalid URL")

        if self.is_catalog_domain(parsed.hostname):
            return UrlResolution(parsed.geturl(), True, True)

        if not self.is_short_domain(parsed.hostname):
            return UrlResolution(
                parsed.geturl(), False, True, "Not a known catalog short link"
            )

        final_url = parsed.geturl()
        for _ in range(self.max_redirects):
            try:
                response = requests.head(
                    final_url,
                    allow_redirects=False,
                    headers={"User-Agent": USER_AGENT},
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                return UrlResolution(None, False, False, f"Error following redirect: {e}")

            if not 300 <= response.status_code < 400:
                break

            location = response.headers.get("Location")
            if not location:
                break

            final_url = urljoin(final_url, location)
            hostname = urlparse(final_url).hostname or ""
            if self.is_catalog_domain(hostname):
                return UrlResolution(final_url, True, True)
        else:
            return UrlResolution(None, False, False, "Too many redirects")

        is_catalog = self.is_catalog_domain(urlparse(final_url).hostname or "")
        return UrlResolution(
            final_url,
            is_catalog,
            True,
            None if is_catalog else "Final URL is not a catalog URL",
        )
