"""
Request forwarding for the browser-facing submit route.

ForwardingProxy relays a POST body, unchanged, to the URL held in an
environment variable and hands back the upstream status and raw text. It
exists so a browser client can reach an endpoint that does not allow
cross-origin requests.
"""
import json
import logging
import os
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Mapping, Optional

from config import ENDPOINT_ENV_VAR

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30


@dataclass
class ProxyResponse:
    status_code: int
    body: str
    media_type: str = "application/json"
    headers: dict = field(default_factory=dict)


def _error(status_code: int, message: str, **headers: str) -> ProxyResponse:
    return ProxyResponse(status_code, json.dumps({"error": message}), headers=dict(headers))


class ForwardingProxy:
    """
    Forwards POST bodies to the URL in os.environ[env_var].

    The variable is read on every call, so the target can be changed
    without restarting the process.
    """

    def __init__(
        self,
        env_var: str = ENDPOINT_ENV_VAR,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.env_var = env_var
        self.timeout = timeout
        self._environ = environ

    @property
    def target_url(self) -> Optional[str]:
        environ = self._environ if self._environ is not None else os.environ
        return environ.get(self.env_var) or None

    def forward(self, method: str, body: bytes) -> ProxyResponse:
        if method.upper() != "POST":
            return _error(405, "Method not allowed", Allow="POST")

        endpoint = self.target_url
        if not endpoint:
            logger.error("%s environment variable is not set.", self.env_var)
            return _error(500, "Server configuration error.")

        req = urllib.request.Request(endpoint, data=body, method="POST")
        req.add_header("Content-Type", "application/json")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                status_code = response.getcode()
                text = response.read().decode("utf-8", errors="replace")
                media_type = response.headers.get_content_type() if response.headers else "text/plain"
        except urllib.error.HTTPError as e:
            # Upstream answered; relay its status and body verbatim
            text = e.read().decode("utf-8", errors="replace") if e.fp else ""
            media_type = e.headers.get_content_type() if e.headers else "text/plain"
            logger.info("Forwarded request to %s: HTTP %d", endpoint, e.code)
            return ProxyResponse(e.code, text, media_type=media_type)
        except Exception as e:
            logger.error("Error forwarding request: %s", e)
            return _error(500, "Failed to forward request")

        logger.info("Forwarded request to %s: HTTP %d", endpoint, status_code)
        return ProxyResponse(status_code, text, media_type=media_type)
