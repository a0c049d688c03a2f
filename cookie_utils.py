# cookie_utils.py
"""
Netscape cookies.txt import for the shared session cookie jar.

Runs before any transcript call; the transcript core itself never reads
the file, it only sees the populated jar on the session.
"""
import time
from pathlib import Path
from typing import List, Union

from requests.cookies import RequestsCookieJar, create_cookie

from transcript_errors import CookieInvalid, CookiePathInvalid

HTTP_ONLY_PREFIX = "#HttpOnly_"


def parse_netscape_cookies_txt(raw: str) -> List[dict]:
    """
    Return a list of rows with keys:
    domain, include_subdomains, path, secure, expires, name, value
    """
    rows = []
    for line in raw.splitlines():
        line = line.strip()
        # curl/browser exports mark HttpOnly cookies with a comment-like prefix
        if line.startswith(HTTP_ONLY_PREFIX):
            line = line[len(HTTP_ONLY_PREFIX):]
        if not line or line.startswith("#"):
            continue
        parts = line.split("\t")
        if len(parts) != 7:
            continue
        domain, include_sub, path, secure, expires, name, value = parts
        rows.append({
            "domain": domain,
            "include_subdomains": include_sub.upper() == "TRUE",
            "path": path or "/",
            "secure": secure.upper() == "TRUE",
            "expires": int(expires) if expires.isdigit() else 0,
            "name": name,
            "value": value,
        })
    return rows


def to_requests_cookiejar(rows: List[dict]) -> RequestsCookieJar:
    jar = RequestsCookieJar()
    now = int(time.time())
    for r in rows:
        # Session cookies (expires=0) get a 30 day lifetime so the jar keeps them
        exp = r["expires"] if r["expires"] > 0 else now + 86400 * 30
        jar.set_cookie(create_cookie(
            name=r["name"],
            value=r["value"],
            domain=r["domain"],
            path=r["path"] or "/",
            secure=r["secure"],
            expires=exp,
            rest={"HttpOnly": None},
        ))
    return jar


def load_cookie_jar(cookie_path: Union[str, Path]) -> RequestsCookieJar:
    """
    Load a Netscape-format cookie file into a jar.

    Raises:
        CookiePathInvalid: the file does not exist or cannot be read
        CookieInvalid: the file is empty or holds no usable cookie rows
    """
    path = Path(cookie_path)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CookiePathInvalid(cookie_path) from e

    if not raw.strip():
        raise CookieInvalid(cookie_path)

    rows = parse_netscape_cookies_txt(raw)
    if not rows:
        raise CookieInvalid(cookie_path)

    return to_requests_cookiejar(rows)
