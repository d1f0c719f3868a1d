import json
import requests
from urllib.parse import urljoin, urlparse
from typing import Any, Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from control_client.config import ConfigManager

from control_client.core.command_encoder import to_json_string_literal
from control_client.exceptions import TransportError
from control_client.models import Credential, Session, parse_session
from control_client.utils import get_logger
from control_client.version import USER_AGENT

logger = get_logger(__name__)

SESSION_GROUP = "All Machines"
PAGE_SERVICE_PATH = "Services/PageService.ashx/"
GET_SESSION_DETAILS = "GetSessionDetails"
ADD_EVENT_TO_SESSIONS = "AddEventToSessions"
DEFAULT_REQUEST_TIMEOUT_SEC = 15


class SessionLogClient:
    """
    HTTP client for the session-detail and event-submission endpoints of the
    remote-management service.

    Handles request construction, authentication, error handling, and response parsing.
    Failures are raised as :class:`TransportError`; nothing is retried here.

    :ivar base_url: The base URL of the page service.
    :ivar timeout: The per-request timeout in seconds.
    """

    def __init__(self, server: str, credential: Credential, timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC,
                 http_session: Optional[requests.Session] = None):
        """
        Initializes the client.

        :param server: Base URL of the service, including scheme.
        :type server: str
        :param credential: Username and password sent with every request.
        :type credential: Credential
        :param timeout: Per-request timeout in seconds.
        :type timeout: float
        :param http_session: Optional pre-built ``requests.Session`` to reuse.
        :type http_session: Optional[requests.Session]
        :raises ValueError: If `server` is empty or lacks a scheme or host.
        """
        if not server:
            raise ValueError("Server URL is required.")

        parsed_url = urlparse(server)
        if not parsed_url.scheme or not parsed_url.netloc:
            raise ValueError(f"Invalid server URL: {server}. Must include scheme (e.g., http:// or https://).")

        self.base_url = urljoin(f"{parsed_url.scheme}://{parsed_url.netloc}", parsed_url.path.rstrip('/') + "/" + PAGE_SERVICE_PATH)
        self.timeout = timeout
        self._http = http_session or requests.Session()
        self._http.auth = credential.as_auth()
        self._http.headers.setdefault('User-Agent', USER_AGENT)
        logger.debug(f"Session log client initialized. Base URL: {self.base_url}, Timeout: {self.timeout}s, User: {credential.username}")

    @classmethod
    def from_config(cls, config: 'ConfigManager', credential: Credential) -> 'SessionLogClient':
        """Builds a client from the ``server_url`` and ``http_client`` configuration keys."""
        return cls(
            config.get('server_url'),
            credential,
            timeout=config.get('http_client.request_timeout_sec', DEFAULT_REQUEST_TIMEOUT_SEC),
        )

    def __enter__(self) -> 'SessionLogClient':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def fetch_session(self, guid: str) -> Optional[Session]:
        """
        Fetches the session detail for one machine.

        :param guid: The session GUID.
        :type guid: str
        :return: The session, or None when the service knows no such machine.
        :rtype: Optional[Session]
        :raises TransportError: On network, authentication or decoding failure.
        """
        logger.debug(f"Fetching session detail for {guid}")
        body = json.dumps([SESSION_GROUP, guid])
        response_data = self._make_request(GET_SESSION_DETAILS, body)

        if not response_data:
            logger.info(f"Session {guid} not found on the server.")
            return None
        return parse_session(guid, response_data)

    def submit_event(self, guids: Iterable[str], event_type: int, payload: str) -> None:
        """
        Adds an event to each of the given sessions.

        The payload is embedded verbatim as a JSON string, so it must already
        have its backslashes and quotes escaped (see ``command_encoder.encode``).
        The acknowledgment only confirms acceptance, not completion.

        :param guids: Target session GUIDs.
        :type guids: Iterable[str]
        :param event_type: Event code to add.
        :type event_type: int
        :param payload: Escaped event data.
        :type payload: str
        :raises ValueError: If no GUID is given.
        :raises TransportError: If the service rejects the request or cannot be reached.
        """
        targets = sorted(set(guids))
        if not targets:
            raise ValueError("At least one session GUID is required to submit an event.")

        body = "[{group},{guids},{code},{payload}]".format(
            group=json.dumps(SESSION_GROUP),
            guids=json.dumps(targets),
            code=int(event_type),
            payload=to_json_string_literal(payload),
        )
        logger.info(f"Submitting event {int(event_type)} to {len(targets)} session(s): {', '.join(targets)}")
        self._make_request(ADD_EVENT_TO_SESSIONS, body)

    def _make_request(self, method_name: str, body: str) -> Any:
        """
        Posts a JSON body to a page-service method and decodes the response.

        :param method_name: Page-service method, e.g. ``GetSessionDetails``.
        :type method_name: str
        :param body: Serialized JSON request body.
        :type body: str
        :return: Decoded JSON, or None for an empty or ``null`` body.
        :rtype: Any
        :raises TransportError: On timeout, connection error, HTTP error status or invalid JSON.
        """
        full_url = urljoin(self.base_url, method_name)
        headers = {'Content-Type': 'application/json'}

        try:
            logger.debug(f"Making HTTP request: POST {full_url} (Timeout: {self.timeout}s)")
            response = self._http.post(full_url, data=body.encode('utf-8'), headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            logger.error(f"Request timed out after {self.timeout}s: POST {full_url}")
            raise TransportError(f"Request timed out after {self.timeout} seconds.") from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error: POST {full_url} - {e}")
            raise TransportError(f"Unable to connect to the server at {urlparse(self.base_url).netloc}.") from e
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in (401, 403):
                message = "Authentication rejected by server"
            else:
                message = "Server error"
            error_text = e.response.text[:200] if e.response is not None else ""
            logger.error(f"HTTP error {status_code}: POST {full_url}. Response: {error_text}")
            raise TransportError(message, status_code=status_code) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"An unexpected request error occurred: POST {full_url} - {e}")
            raise TransportError(f"Unexpected network error: {e}") from e

        if response.status_code == 204 or not response.text.strip():
            logger.debug(f"Request successful with empty body ({response.status_code}): POST {full_url}")
            return None
        try:
            response_json = response.json()
        except ValueError as e:
            logger.error(f"Failed to decode JSON response from POST {full_url} (Status: {response.status_code}). Response text: {response.text[:200]}...")
            raise TransportError("Invalid JSON response from server despite success status.", status_code=response.status_code) from e

        logger.debug(f"Request successful ({response.status_code}): POST {full_url}")
        return response_json
