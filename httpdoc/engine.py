"""Transport: send parsed requests with the requests library and report.

This module sits outside the parser core. It takes a finished
:class:`~httpdoc.parser.Request`, reads external bodies from disk and
performs the network exchange.
"""

from __future__ import annotations

from pathlib import Path

import urllib3

import requests

from httpdoc.body import EXTERNAL
from httpdoc.parser import Request

# Headers requests computes itself from the URL, body and session
MANAGED_HEADERS = {"host", "content-length", "accept-encoding"}


class ExchangeResult:
    """Container for the response to a sent request."""

    __slots__ = (
        "status_code",
        "reason",
        "headers",
        "body",
        "elapsed_ms",
    )

    def __init__(
        self,
        status_code: int,
        reason: str,
        headers: dict[str, str],
        body: str,
        elapsed_ms: float,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.headers = headers
        self.body = body
        self.elapsed_ms = elapsed_ms

    @property
    def ok(self) -> bool:
        return self.status_code < 400


def flatten_headers(headers: dict[str, list[str]], has_cookies: bool = False) -> dict[str, str]:
    """Join repeated header values and drop headers requests manages.

    Args:
        headers: Lower-cased header names mapped to their values.
        has_cookies: Drop the ``cookie`` header because the cookies are
            passed to requests separately.

    Returns:
        A new single-valued headers dictionary.
    """
    flat: dict[str, str] = {}
    for name, values in headers.items():
        if name in MANAGED_HEADERS:
            continue
        if has_cookies and name == "cookie":
            continue
        flat[name] = ", ".join(values)
    return flat


def read_body(request: Request, base_dir: Path | None = None) -> str | bytes | None:
    """Return the payload to send for *request*.

    External bodies are read relative to *base_dir* (the current directory
    when omitted).

    Raises:
        FileNotFoundError: If an external body file does not exist.
    """
    if request.body is None:
        return None
    if request.body.type != EXTERNAL:
        return request.body.data
    path = Path(request.body.data["path"])
    if not path.is_absolute():
        path = (base_dir or Path.cwd()) / path
    return path.read_bytes()


def send_request(
    request: Request,
    base_dir: Path | None = None,
    timeout: float = 30,
    proxy: str | None = None,
    verify: bool = True,
) -> ExchangeResult:
    """Send *request* and capture the response.

    Args:
        request: The parsed request.
        base_dir: Directory external body paths are relative to.
        timeout: Request timeout in seconds.
        proxy: Optional proxy URL for debugging.
        verify: Whether to verify TLS certificates.

    Returns:
        An ExchangeResult with the response.
    """
    if not verify:
        # Suppress InsecureRequestWarning when certificate checks are off
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    proxies = None
    if proxy:
        proxies = {"http": proxy, "https": proxy}

    response = requests.request(
        method=request.method,
        url=request.url,
        headers=flatten_headers(request.headers, bool(request.cookies)),
        cookies=request.cookies or None,
        data=read_body(request, base_dir),
        proxies=proxies,
        timeout=timeout,
        verify=verify,
        allow_redirects=False,
    )

    return ExchangeResult(
        status_code=response.status_code,
        reason=response.reason or "",
        headers=dict(response.headers),
        body=response.text,
        elapsed_ms=response.elapsed.total_seconds() * 1000,
    )


def print_report(request: Request, result: ExchangeResult) -> None:
    """Print the exchange to stdout.

    Args:
        request: The request that was sent.
        result: The ExchangeResult received for it.
    """
    banner = "=" * 60
    print(f"\n{banner}")
    print(f"  {request.name or '<unnamed>'}: {request.method} {request.url}")
    print(banner)
    print(f"\n  Status : {result.status_code} {result.reason}".rstrip())
    print(f"  Time   : {result.elapsed_ms:.0f} ms")

    print("\n  Response Headers:")
    for key, value in result.headers.items():
        print(f"    {key}: {value}")
    print(f"\n  Response Body:\n{result.body}")

    print(f"\n{banner}\n")
