from collections.abc import Callable
from pathlib import Path
import json
import logging

import google.auth
import google.auth.exceptions
import httplib2
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build, Resource
import googleapiclient.discovery_cache as gws_discovery_cache

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str]

SCOPES = {
    "analytics-edit": "https://www.googleapis.com/auth/analytics.edit",
    "analytics-ro": "https://www.googleapis.com/auth/analytics.readonly",
    "sheets": "https://www.googleapis.com/auth/spreadsheets",
    "sheets-ro": "https://www.googleapis.com/auth/spreadsheets.readonly",
}
DEFAULT_SCOPES = [SCOPES["analytics-edit"], SCOPES["sheets"]]

_DEFAULT_AUTH_PROMPT_MSG = "Authorize ga4sheets by visiting: {url}"
_DEFAULT_AUTH_FLOW_SUCCESS_MSG = "ga4sheets is authorized, you may close this window."


class AdminAccess():
    """
    Hands out discovery services authenticated with whatever bearer token
    the host's token provider gives back.  The provider is called once per
    service build, the token is assumed good for the whole run so there is no
    refresh here.

    Services are cached per name:version so the Admin and Sheets services
    are each only built once per run.
    """
    def __init__(self, token_provider: TokenProvider,
                 timeout: float = 30.0) -> None:
        self._token_provider = token_provider
        self._timeout = timeout
        self._discovery_cache = gws_discovery_cache.autodetect()
        self._services = {}

    def __str__(self) -> str:
        return f"AdminAccess:{sorted(self._services)}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    def authorized_http(self) -> AuthorizedHttp:
        """
        httplib2 carries the transport timeout, a call exceeding it surfaces
        as a socket timeout which the collection client turns into a status 0
        failure for the row.
        """
        creds = Credentials(token=self._token_provider())
        return AuthorizedHttp(creds, http=httplib2.Http(timeout=self._timeout))

    def get_service(self, name: str, version: str) -> Resource:
        id = f'{name}:{version}'
        s = self._services.get(id, None)
        if s is None:
            s = build(name, version, http=self.authorized_http(),
                      cache=self._discovery_cache)
            self._services[id] = s
        return s


def static_token_provider(token: str) -> TokenProvider:
    """For hosts that already hold a bearer token."""
    def provider() -> str:
        return token
    return provider

def default_token_provider(scopes: list[str] = DEFAULT_SCOPES) -> TokenProvider:
    """
    Application default credentials, this will look at the GOOGLE_APPLICATION_CREDENTIALS
    envvar and other cloud default locations.
    """
    def provider() -> str:
        creds, _ = google.auth.default(scopes)
        if not creds.valid:
            creds.refresh(Request())
        return creds.token
    return provider

def installed_app_token_provider(client_secrets: Path|str,
                                 token_cache: Path|str,
                                 scopes: list[str] = DEFAULT_SCOPES,
                                 auth_server: str = "localhost",
                                 auth_port: int = 0) -> TokenProvider:
    """
    OAuth installed app flow for running from a desktop.  Sessions are
    preserved in the token cache and refreshed so the confirmation screens
    do not need to happen repeatedly.
    """
    secrets = Path(client_secrets)
    cache = Path(token_cache)

    def provider() -> str:
        creds = None
        if cache.exists() and cache.is_file():
            # the cache doesn't know which scopes it was granted unless we
            # stored them, a mismatch means re-authorizing
            with open(cache, 'r', encoding='utf-8') as f:
                j = json.load(f)
            if all(s in j.get('scopes', []) for s in scopes):
                creds = Credentials.from_authorized_user_file(str(cache), scopes)
            else:
                cache.unlink()
        if creds and not creds.valid and creds.refresh_token:
            try:
                creds.refresh(Request())
            except google.auth.exceptions.RefreshError as e:
                logger.warning("failed to refresh stored creds: %s...deleting cred cache and re-authorizing", e)
                creds = None
                cache.unlink(missing_ok=True)
        if not creds or not creds.valid:
            flow = InstalledAppFlow.from_client_secrets_file(str(secrets), scopes)
            creds = flow.run_local_server(host=auth_server, port=auth_port,
                                          authorization_prompt_message=_DEFAULT_AUTH_PROMPT_MSG,
                                          success_message=_DEFAULT_AUTH_FLOW_SUCCESS_MSG)
            user_info = {'refresh_token': creds.refresh_token, 'client_id': creds.client_id,
                         'client_secret': creds.client_secret, 'scopes': scopes}
            with open(cache, 'w', encoding='utf-8') as f:
                json.dump(user_info, f, ensure_ascii=False, indent=2)
        return creds.token
    return provider
