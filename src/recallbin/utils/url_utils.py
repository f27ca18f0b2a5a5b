"""URL validation and parsing utilities."""

from urllib.parse import urlparse


class URLValidationError(Exception):
    """URL validation error."""

    pass


def validate_url_scheme(url: str) -> None:
    """Validate URL has allowed scheme (http/https only).

    Raises:
        URLValidationError: If URL scheme is not allowed
    """
    parsed = urlparse(url)

    if not parsed.scheme:
        raise URLValidationError("URL missing scheme (http:// or https://)")

    if parsed.scheme not in ["http", "https"]:
        raise URLValidationError(
            f"URL scheme '{parsed.scheme}' not allowed. Only http:// and https:// are permitted."
        )

    if not parsed.netloc:
        raise URLValidationError("URL missing host")

