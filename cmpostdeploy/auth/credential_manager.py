import getpass
import os
import time
from typing import Optional

from dotenv import load_dotenv
import requests
from requests.auth import HTTPBasicAuth

from cmpostdeploy.exceptions import AdminAPIError, ConfigError


class CredentialManager:
    """
    Loads CMPD_* environment variables (optionally from .env) and manages
    the credentials used against the SMS provider and the mail relay:

    - basic:  CMPD_USERNAME / CMPD_PASSWORD
    - oauth:  CMPD_TENANT_ID / CMPD_CLIENT_ID / CMPD_CLIENT_SECRET, with a
              cached access token refreshed shortly before it expires
    - smtp:   CMPD_SMTP_PASSWORD
    """

    def __init__(
        self,
        env_prefix: str = "CMPD_",
        refresh_margin: int = 60,
        interactive: bool = False,
    ) -> None:
        """
        :param env_prefix: Prefix used for environment variables.
        :param refresh_margin: Seconds before real expiry when we proactively refresh.
        :param interactive: Prompt for missing secrets instead of failing.
        """
        load_dotenv()
        self.env_prefix = env_prefix
        self.refresh_margin = refresh_margin
        self.interactive = interactive
        self._token: Optional[str] = None
        self._token_scope: Optional[str] = None
        self._token_expires_at: Optional[int] = None  # UNIX epoch

    # --------------------------------------------------------------------- #
    # Helper: read env vars
    # --------------------------------------------------------------------- #
    def _env(self, key: str) -> str:
        full_key = f"{self.env_prefix}{key}"
        value = os.getenv(full_key)
        if value is None:
            raise ConfigError(f"Missing required environment variable: {full_key}")
        return value

    def _secret(self, key: str, prompt: str) -> str:
        try:
            return self._env(key)
        except ConfigError:
            if not self.interactive:
                raise
            return getpass.getpass(prompt)

    # --------------------------------------------------------------------- #
    # Basic authentication
    # --------------------------------------------------------------------- #
    def get_basic_auth(self) -> HTTPBasicAuth:
        username = self._env("USERNAME")
        password = self._secret("PASSWORD", f"Password for {username}: ")
        return HTTPBasicAuth(username, password)

    # --------------------------------------------------------------------- #
    # SMTP
    # --------------------------------------------------------------------- #
    def get_smtp_password(self) -> Optional[str]:
        return os.getenv(f"{self.env_prefix}SMTP_PASSWORD")

    # --------------------------------------------------------------------- #
    # Token handling
    # --------------------------------------------------------------------- #
    def _token_expired(self, scope: str) -> bool:
        if self._token is None or self._token_expires_at is None:
            return True
        if scope != self._token_scope:
            return True
        return time.time() >= (self._token_expires_at - self.refresh_margin)

    def _fetch_token(self, scope: str, timeout: float) -> None:
        """
        Performs the client-credentials flow and stores
        self._token and self._token_expires_at.
        """
        tenant = self._env("TENANT_ID")
        url = f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"

        data = {
            "client_id": self._env("CLIENT_ID"),
            "client_secret": self._secret("CLIENT_SECRET", "Enter your client secret: "),
            "grant_type": "client_credentials",
            "scope": scope,
        }

        try:
            response = requests.post(url, data=data, timeout=timeout)
            response.raise_for_status()
            token_data = response.json()
            token = token_data["access_token"]
        except (requests.RequestException, ValueError, KeyError) as err:
            raise AdminAPIError(f"Failed to acquire access token: {err}") from err

        self._token = token
        self._token_scope = scope
        # expires_in is seconds until expiry
        expires_in = int(token_data.get("expires_in", 0))
        self._token_expires_at = int(time.time()) + expires_in

    def get_token(self, scope: str, timeout: float = 30) -> str:
        """
        Returns a valid access token for scope, refreshing it when necessary.
        """
        if self._token_expired(scope):
            self._fetch_token(scope, timeout)
        return self._token  # type: ignore[return-value]
