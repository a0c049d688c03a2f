#!/usr/bin/env python3
"""
Configuration management for the transcript client.

Loads settings from environment variables (and a local .env file, without
overriding variables that are already set) with sensible defaults and
validation. The core modules never read the environment; they receive a
TranscriptConfig instance from the caller or from get_config().
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from dotenv import load_dotenv

from logging_setup import get_logger
from proxy_config import GenericProxyConfig, ProxyConfig, WebshareProxyConfig
from timedtext_parser import DEFAULT_LINK_TEMPLATE, resolve_link_template

logger = get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/137.0.0.0 Safari/537.36"
)
PLAYER_SOURCES = ("watch_page", "innertube")


@dataclass
class TranscriptConfig:
    """Configuration for page, player-data and timed-text requests."""

    # HTTP
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "en-US"
    request_timeout: int = 15
    connect_retries: int = 2

    # Transport collaborators
    cookies_path: Optional[str] = None
    http_proxy: Optional[str] = None
    https_proxy: Optional[str] = None
    webshare_username: Optional[str] = None
    webshare_password: Optional[str] = None

    # Transcript defaults
    languages: List[str] = field(default_factory=lambda: ["en"])
    preserve_formatting: bool = False
    link_template: str = DEFAULT_LINK_TEMPLATE
    player_source: str = "watch_page"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls) -> 'TranscriptConfig':
        """Load configuration from environment variables with validation."""
        load_dotenv(override=False)

        config = cls(
            user_agent=os.getenv("YT_TRANSCRIPT_USER_AGENT", DEFAULT_USER_AGENT),
            accept_language=os.getenv("YT_TRANSCRIPT_ACCEPT_LANGUAGE", "en-US"),
            request_timeout=cls._parse_int_env("YT_TRANSCRIPT_TIMEOUT", 15, min_val=1, max_val=120),
            connect_retries=cls._parse_int_env("YT_TRANSCRIPT_CONNECT_RETRIES", 2, min_val=0, max_val=5),

            cookies_path=os.getenv("YT_TRANSCRIPT_COOKIES_PATH") or None,
            http_proxy=os.getenv("YT_TRANSCRIPT_HTTP_PROXY") or None,
            https_proxy=os.getenv("YT_TRANSCRIPT_HTTPS_PROXY") or None,
            webshare_username=os.getenv("WEBSHARE_PROXY_USERNAME") or None,
            webshare_password=os.getenv("WEBSHARE_PROXY_PASSWORD") or None,

            languages=cls._parse_list_env("YT_TRANSCRIPT_LANGUAGES", ["en"]),
            preserve_formatting=cls._parse_bool_env("YT_TRANSCRIPT_PRESERVE_FORMATTING", False),
            link_template=os.getenv("YT_TRANSCRIPT_LINK_TEMPLATE", DEFAULT_LINK_TEMPLATE),
            player_source=os.getenv("YT_TRANSCRIPT_PLAYER_SOURCE", "watch_page").strip().lower(),

            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=cls._parse_bool_env("LOG_JSON", True),
        )

        config._validate_config()
        return config

    @staticmethod
    def _parse_bool_env(env_var: str, default: bool) -> bool:
        """Parse boolean environment variable."""
        value = os.getenv(env_var, str(default).lower())
        return value.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _parse_int_env(env_var: str, default: int, min_val: Optional[int] = None, max_val: Optional[int] = None) -> int:
        """Parse integer environment variable, clamping to [min_val, max_val]."""
        try:
            value = int(os.getenv(env_var, str(default)))
        except (ValueError, TypeError):
            logger.error(f"Invalid value for {env_var}: {os.getenv(env_var)}, using default {default}")
            return default

        if min_val is not None and value < min_val:
            logger.warning(f"{env_var}={value} is below minimum {min_val}, using {min_val}")
            return min_val

        if max_val is not None and value > max_val:
            logger.warning(f"{env_var}={value} is above maximum {max_val}, using {max_val}")
            return max_val

        return value

    @staticmethod
    def _parse_list_env(env_var: str, default: List[str]) -> List[str]:
        raw = os.getenv(env_var)
        if raw is None:
            return list(default)
        values = [item.strip() for item in raw.split(",") if item.strip()]
        return values or list(default)

    def _validate_config(self) -> None:
        """Fix up invalid values and log warnings for problematic combinations."""
        if self.player_source not in PLAYER_SOURCES:
            logger.warning(
                f"Unknown player source {self.player_source!r}, expected one of {PLAYER_SOURCES}; using 'watch_page'"
            )
            self.player_source = "watch_page"

        try:
            self.link_template = resolve_link_template(self.link_template)
        except ValueError:
            logger.warning("Link template must contain {text} and {url} placeholders; using the HTML default")
            self.link_template = DEFAULT_LINK_TEMPLATE

        if (self.http_proxy or self.https_proxy) and self.webshare_username:
            logger.warning("Both generic and Webshare proxies configured; Webshare takes precedence")

        if bool(self.webshare_username) != bool(self.webshare_password):
            logger.warning("Webshare proxy needs both WEBSHARE_PROXY_USERNAME and WEBSHARE_PROXY_PASSWORD; ignoring it")
            self.webshare_username = None
            self.webshare_password = None

    def proxy_config(self) -> Optional[ProxyConfig]:
        """Build the proxy object for the HTTP session, if any proxy is configured."""
        if self.webshare_username and self.webshare_password:
            return WebshareProxyConfig(self.webshare_username, self.webshare_password)
        if self.http_proxy or self.https_proxy:
            return GenericProxyConfig(http_url=self.http_proxy, https_url=self.https_proxy)
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging; secrets are masked."""
        return {
            "http": {
                "user_agent": self.user_agent,
                "accept_language": self.accept_language,
                "request_timeout": self.request_timeout,
                "connect_retries": self.connect_retries,
            },
            "transport": {
                "cookies_path": self.cookies_path,
                "http_proxy": _mask_secret(self.http_proxy),
                "https_proxy": _mask_secret(self.https_proxy),
                "webshare_username": self.webshare_username,
                "webshare_password": "***MASKED***" if self.webshare_password else None,
            },
            "transcripts": {
                "languages": list(self.languages),
                "preserve_formatting": self.preserve_formatting,
                "link_template": self.link_template,
                "player_source": self.player_source,
            },
            "logging": {
                "log_level": self.log_level,
                "log_json": self.log_json,
            },
        }


def _mask_secret(url: Optional[str]) -> Optional[str]:
    """Hide the password part of a proxy url."""
    if not url or "@" not in url:
        return url
    scheme, _, rest = url.rpartition("://")
    credentials, _, host = rest.rpartition("@")
    user = credentials.split(":", 1)[0]
    prefix = f"{scheme}://" if scheme else ""
    return f"{prefix}{user}:***MASKED***@{host}"


# Global configuration instance
_config: Optional[TranscriptConfig] = None


def get_config() -> TranscriptConfig:
    """Get the process-wide configuration instance."""
    global _config
    if _config is None:
        _config = TranscriptConfig.from_env()
    return _config


def reload_config() -> TranscriptConfig:
    """Reload configuration from environment variables."""
    global _config
    _config = TranscriptConfig.from_env()
    return _config
