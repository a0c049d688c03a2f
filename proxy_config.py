"""
Proxy configuration objects handed to the HTTP session factory.

The transcript core never picks a proxy itself; it only consumes a session
that was built from one of these.
"""

from typing import Dict, Optional

from transcript_errors import InvalidProxyConfig


class ProxyConfig:
    """Base interface: render a `requests`-style proxies dict."""

    # Rotating pools hand out a new exit IP per connection
    rotating = False

    def to_requests_dict(self) -> Dict[str, str]:
        raise NotImplementedError

    @property
    def prevent_keeping_connections_alive(self) -> bool:
        """Rotating proxies only rotate on new connections, so keep-alive defeats them."""
        return False

    def to_dict(self) -> Dict[str, str]:
        """Proxy description safe for logs (credentials removed)."""
        return {"type": type(self).__name__}


class GenericProxyConfig(ProxyConfig):
    """Plain HTTP/HTTPS proxy URLs; at least one must be given."""

    def __init__(self, http_url: Optional[str] = None, https_url: Optional[str] = None):
        if not http_url and not https_url:
            raise InvalidProxyConfig(
                "GenericProxyConfig requires you to define at least one of the two: http or https"
            )
        self.http_url = http_url
        self.https_url = https_url

    def to_requests_dict(self) -> Dict[str, str]:
        return {
            "http": self.http_url or self.https_url,
            "https": self.https_url or self.http_url,
        }


class WebshareProxyConfig(GenericProxyConfig):
    """Rotating residential proxies from Webshare."""

    DEFAULT_DOMAIN_NAME = "p.webshare.io"
    DEFAULT_PORT = 80

    rotating = True

    def __init__(
        self,
        proxy_username: str,
        proxy_password: str,
        domain_name: str = DEFAULT_DOMAIN_NAME,
        proxy_port: int = DEFAULT_PORT,
    ):
        if not proxy_username or not proxy_password:
            raise InvalidProxyConfig("WebshareProxyConfig requires both a username and a password")
        self.proxy_username = proxy_username
        self.proxy_password = proxy_password
        self.domain_name = domain_name
        self.proxy_port = proxy_port
        super().__init__(http_url=self.url, https_url=self.url)

    @property
    def url(self) -> str:
        return (
            f"http://{self.proxy_username}-rotate:{self.proxy_password}"
            f"@{self.domain_name}:{self.proxy_port}/"
        )

    @property
    def prevent_keeping_connections_alive(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": type(self).__name__,
            "domain_name": self.domain_name,
            "proxy_port": str(self.proxy_port),
        }
