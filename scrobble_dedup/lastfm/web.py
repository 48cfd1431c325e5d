from __future__ import annotations

import json
import logging
import time
from collections import deque
from datetime import timedelta
from pathlib import Path

import requests
from requests.cookies import create_cookie

from ..errors import DurationLookupError, LoginError, PageFetchError, ScrobbleDeleteError
from .parse import LASTFM_BASE_URL, DeleteForm, parse_library_rows, parse_page_count, parse_track_page_length
from .scrobble import DateRange, Scrobble

log = logging.getLogger(__name__)

LASTFM_LOGIN_URL = f"{LASTFM_BASE_URL}/login"
SESSION_COOKIE = "sessionid"
CSRF_COOKIE = "csrftoken"
USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/128.0 Safari/537.36"

# Deleting the "previous" scrobble may target the page fetched just before the current one
REMEMBERED_PAGES = 2


class LastFMWebClient:
    """Logged-in access to a user's Last.fm library pages.

    Provides the history source (page_count / fetch_page), the delete
    operation and the track-page duration fallback used by the resolver.
    """

    def __init__(
        self,
        username: str,
        password: str,
        cookie_file: str | Path | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.username = username
        self._password = password
        self.cookie_file = Path(cookie_file) if cookie_file else None
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self._page_forms: deque[list[DeleteForm]] = deque(maxlen=REMEMBERED_PAGES)

    @property
    def library_url(self) -> str:
        return f"{LASTFM_BASE_URL}/user/{self.username}/library"

    def login(self) -> None:
        """Reuse a persisted session cookie, or log in with the site form."""
        if self._load_cookies():
            log.info("Loaded session cookie, skipping login")
            return

        log.info("Logging in to Last.fm as '%s'...", self.username)
        try:
            self.session.get(LASTFM_LOGIN_URL, timeout=self.timeout).raise_for_status()
            csrf = self.session.cookies.get(CSRF_COOKIE)
            if not csrf:
                raise LoginError("no CSRF token returned by the login page")

            resp = self.session.post(
                LASTFM_LOGIN_URL,
                data={
                    "csrfmiddlewaretoken": csrf,
                    "next": f"/user/{self.username}",
                    "username_or_email": self.username.lower(),
                    "password": self._password,
                },
                headers={"Referer": LASTFM_LOGIN_URL},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise LoginError(f"login request failed: {e}") from e

        if SESSION_COOKIE not in self.session.cookies:
            raise LoginError("login rejected, check LASTFM_USER and LASTFM_PASSWORD")

        log.info("Successfully logged in to Last.fm")
        self._save_cookies()

    def _load_cookies(self) -> bool:
        if self.cookie_file is None or not self.cookie_file.exists():
            return False

        try:
            with self.cookie_file.open("r", encoding="utf-8") as f:
                stored = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.warning("Ignoring unreadable cookie file %s: %s", self.cookie_file.name, e)
            return False

        now = time.time()
        session_valid = False
        for entry in stored:
            expires = entry.get("expires")
            if expires is not None and expires < now:
                continue
            self.session.cookies.set_cookie(
                create_cookie(
                    name=entry["name"],
                    value=entry["value"],
                    domain=entry.get("domain", ""),
                    path=entry.get("path", "/"),
                    expires=expires,
                )
            )
            if entry["name"] == SESSION_COOKIE:
                session_valid = True

        if not session_valid:
            log.info("Session cookie expired or missing, logging in again")
        return session_valid

    def _save_cookies(self) -> None:
        if self.cookie_file is None:
            return
        cookies = [
            {
                "name": c.name,
                "value": c.value,
                "domain": c.domain,
                "path": c.path,
                "expires": c.expires,
            }
            for c in self.session.cookies
        ]
        try:
            self.cookie_file.parent.mkdir(parents=True, exist_ok=True)
            with self.cookie_file.open("w", encoding="utf-8") as f:
                json.dump(cookies, f, indent=2)
        except OSError as e:
            log.warning("Failed to save session cookies to %s: %s", self.cookie_file, e)

    def _get_library(self, params: dict[str, str]) -> str:
        try:
            resp = self.session.get(self.library_url, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise PageFetchError(f"failed to load library page {params}: {e}") from e
        return resp.text

    def page_count(self, date_range: DateRange) -> int:
        html = self._get_library(date_range.query_params())
        return parse_page_count(html)

    def fetch_page(self, page: int, date_range: DateRange) -> list[Scrobble]:
        """Return the scrobbles of one library page, newest first as shown."""
        params = {**date_range.query_params(), "page": str(page)}
        log.debug("Fetching library page %d", page)
        rows = parse_library_rows(self._get_library(params))
        log.info("Scrobbles found on page %d: %d", page, len(rows))

        forms = [row.delete_form for row in rows if row.delete_form is not None]
        self._page_forms.append(forms)
        return [row.scrobble for row in rows]

    def delete_scrobble(self, timestamp_raw: str, select_last: bool) -> None:
        """Delete the remembered row whose timestamp identifier matches.

        Two rows can share a timestamp; ``select_last`` picks the last match
        instead of the first.
        """
        matches = [
            (forms, form)
            for forms in self._page_forms
            for form in forms
            if form.timestamp == timestamp_raw
        ]
        if not matches:
            raise ScrobbleDeleteError(f"no delete form found for timestamp {timestamp_raw}")

        forms, form = matches[-1] if select_last else matches[0]

        data = dict(form.fields)
        csrf = self.session.cookies.get(CSRF_COOKIE)
        if csrf:
            data["csrfmiddlewaretoken"] = csrf
        data["ajax"] = "1"

        log.debug("Deleting scrobble with timestamp %s (last=%s)", timestamp_raw, select_last)
        try:
            resp = self.session.post(
                form.action,
                data=data,
                headers={"Referer": self.library_url, "X-Requested-With": "XMLHttpRequest"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ScrobbleDeleteError(f"failed to delete scrobble {timestamp_raw}: {e}") from e

        try:
            result = resp.json()
        except ValueError:
            result = None
        if isinstance(result, dict) and result.get("result") is False:
            raise ScrobbleDeleteError(f"Last.fm refused to delete scrobble {timestamp_raw}")

        forms[:] = [f for f in forms if f is not form]

    def track_duration(self, url: str) -> timedelta | None:
        """Read a track's length from its Last.fm page."""
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DurationLookupError(f"failed to load track page {url}: {e}") from e
        return parse_track_page_length(resp.text)

    def close(self) -> None:
        self.session.close()
