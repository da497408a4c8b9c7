"""M2M access tokens via the OAuth 2.0 client-credentials grant.

The token endpoint is Auth0 itself, or an Auth0 proxy when
``AUTH0_PROXY_SERVER_URL`` is set; the proxy takes the same body plus the
real ``auth0_url``.  Tokens are cached in memory for ``cache_time`` seconds,
or until the provider's ``expires_in`` if that is sooner.
"""

import logging
import time
from typing import Callable, Optional

import requests

from .errors import AuthError

logger = logging.getLogger(__name__)


class M2MTokenProvider:
    """Fetches and caches a machine-to-machine bearer token.

    Args:
        auth0_url:        Token endpoint (``https://<tenant>/oauth/token``)
        audience:         API audience the token is issued for
        client_id:        M2M application client id
        client_secret:    M2M application client secret
        proxy_server_url: Optional Auth0 proxy to post to instead of ``auth0_url``
        cache_time:       Upper bound on how long a token is reused, in seconds
        timeout:          Per-request timeout in seconds
        clock:            Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        auth0_url: str,
        audience: Optional[str],
        client_id: str,
        client_secret: str,
        proxy_server_url: Optional[str] = None,
        cache_time: int = 86400,
        timeout: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.auth0_url = auth0_url
        self.audience = audience
        self.client_id = client_id
        self.client_secret = client_secret
        self.proxy_server_url = proxy_server_url
        self.cache_time = cache_time
        self.timeout = timeout
        self._clock = clock

        self._token: Optional[str] = None
        self._expires_at = 0.0

    def get_token(self) -> str:
        """Return a cached token, or request a new one.

        Raises:
            AuthError: the provider answered non-200, returned no
                ``access_token``, or could not be reached.
        """
        if self._token and self._clock() < self._expires_at:
            logger.debug("Using cached M2M token")
            return self._token

        url = self.proxy_server_url or self.auth0_url
        body = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "audience": self.audience,
        }
        if self.proxy_server_url:
            body["auth0_url"] = self.auth0_url

        logger.info("Requesting M2M token from %s", url)
        try:
            resp = requests.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise AuthError(f"Cannot reach token endpoint {url}: {exc}") from exc

        if resp.status_code != 200:
            raise AuthError(f"Token request failed with HTTP {resp.status_code}: {resp.text}")

        try:
            data = resp.json()
            token = data["access_token"]
        except (ValueError, KeyError, TypeError):
            raise AuthError("Token response did not contain an access_token") from None

        ttl = self.cache_time
        expires_in = data.get("expires_in")
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            ttl = min(ttl, expires_in)

        self._token = token
        self._expires_at = self._clock() + ttl
        logger.info("M2M token acquired, cached for %ss", ttl)
        return token
