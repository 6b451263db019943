"""HTTP transport for the Jira REST and Agile APIs.

Wraps a :class:`requests.Session` with one send method per verb and API
flavour. Send methods return whatever the session produced (normally a
``Response``, ``None`` only from unusual session implementations) and raise
:class:`JiraConnectionError` when the request could not be completed.

The transport never retries. Callers decide whether a failed mutation may be
re-issued.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests import Response

from jira_issues.clients.exceptions import JiraCaptchaError, JiraConnectionError
from jira_issues.config.settings import JiraSettings

logger = logging.getLogger(__name__)

API_VERSION_2 = "/rest/api/2"
API_VERSION_3 = "/rest/api/3"
AGILE_VERSION_1 = "/rest/agile/1.0"

JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

type Header = dict[str, str]


class JiraTransport:
    """Sends requests to a Jira server over a shared session.

    Args:
        settings: Connection settings (server URL, credentials, timeout)
        session: Optional pre-built session; one is created when omitted

    """

    def __init__(
        self,
        settings: JiraSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings
        self.base_url = settings.url.rstrip("/")
        self.agile_base_url = settings.agile_base_url.rstrip("/")
        self.timeout = settings.timeout
        self.debug = settings.debug
        self.request_count = 0

        self.session = session or requests.Session()
        self.session.verify = settings.ssl_verify
        self._configure_auth()

    def _configure_auth(self) -> None:
        """Attach credentials to the session according to the auth type."""
        token = self.settings.api_token
        if not token:
            logger.debug("No API token configured, sending anonymous requests")
            return

        if self.settings.auth_type == "bearer":
            self.session.headers["Authorization"] = f"Bearer {token}"
        else:
            self.session.auth = (self.settings.login, token)

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()

    def __enter__(self) -> JiraTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # REST API v3
    def get(self, path: str, headers: Header | None = None) -> Response | None:
        return self.request("GET", self.base_url + API_VERSION_3 + path, headers=headers)

    def post(self, path: str, body: bytes, headers: Header | None = None) -> Response | None:
        return self.request("POST", self.base_url + API_VERSION_3 + path, body, headers)

    def put(self, path: str, body: bytes, headers: Header | None = None) -> Response | None:
        return self.request("PUT", self.base_url + API_VERSION_3 + path, body, headers)

    # REST API v2
    def get_v2(self, path: str, headers: Header | None = None) -> Response | None:
        return self.request("GET", self.base_url + API_VERSION_2 + path, headers=headers)

    def post_v2(self, path: str, body: bytes, headers: Header | None = None) -> Response | None:
        return self.request("POST", self.base_url + API_VERSION_2 + path, body, headers)

    def put_v2(self, path: str, body: bytes, headers: Header | None = None) -> Response | None:
        return self.request("PUT", self.base_url + API_VERSION_2 + path, body, headers)

    def delete_v2(self, path: str, headers: Header | None = None) -> Response | None:
        return self.request("DELETE", self.base_url + API_VERSION_2 + path, headers=headers)

    # Agile API v1.0
    def get_v1(self, path: str, headers: Header | None = None) -> Response | None:
        return self.request("GET", self.agile_base_url + AGILE_VERSION_1 + path, headers=headers)

    def put_v1(self, path: str, body: bytes, headers: Header | None = None) -> Response | None:
        return self.request("PUT", self.agile_base_url + AGILE_VERSION_1 + path, body, headers)

    def request(
        self,
        method: str,
        url: str,
        body: bytes | None = None,
        headers: Header | None = None,
    ) -> Response | None:
        """Send a request and return the session's response untouched.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            url: Absolute request URL
            body: Optional encoded request body
            headers: Optional request headers

        Returns:
            The response, or None if the session produced none

        Raises:
            JiraConnectionError: If the request could not be completed
            JiraCaptchaError: If Jira demands a CAPTCHA login

        """
        self.request_count += 1
        logger.debug("%s %s (request #%s)", method, url, self.request_count)
        if self.debug and body:
            logger.debug("Request body: %s", body.decode("utf-8", errors="replace"))

        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if headers:
            kwargs["headers"] = headers
        if body is not None:
            kwargs["data"] = body

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.Timeout as e:
            msg = f"Request to {url} timed out after {self.timeout}s"
            raise JiraConnectionError(msg) from e
        except requests.exceptions.RequestException as e:
            msg = f"Error during API request to {url}: {e!s}"
            raise JiraConnectionError(msg) from e

        if response is None:
            logger.debug("No response received for %s %s", method, url)
            return None

        logger.debug("%s %s -> %s %s", method, url, response.status_code, response.reason)
        if self.debug and response.content:
            logger.debug("Response body: %s", response.text)

        self._check_captcha(response)
        return response

    def _check_captcha(self, response: Response) -> None:
        """Raise when Jira refuses the request until a CAPTCHA is solved.

        Raises:
            JiraCaptchaError: If a CAPTCHA challenge is detected

        """
        header_value = response.headers.get("X-Authentication-Denied-Reason", "")
        if "CAPTCHA_CHALLENGE" not in header_value:
            return

        login_url = self.base_url + "/login.jsp"
        if "; login-url=" in header_value:
            login_url = header_value.split("; login-url=")[1].strip()

        logger.error("CAPTCHA challenge detected from Jira!")
        msg = (
            f"CAPTCHA challenge detected. Please open {login_url} in your web "
            f"browser, log in to resolve the CAPTCHA, and then try again"
        )
        raise JiraCaptchaError(msg)
