"""
Housing backend API client implementation.

The backend exposes its tables through a PostgREST-style REST API
(`/rest/v1/<table>?column=eq.value`) and server-side functions under
`/rest/v1/rpc/<name>`.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..schemas.records import EmployeeRecord, RoommatePairingRecord, UnitRecord

logger = logging.getLogger(__name__)

CONFIRM_FUNCTION_SQL = Path(__file__).parent / "sql" / "confirm_roommate_pairing.sql"

# REST layer error code for "function not found in schema cache"
MISSING_FUNCTION_CODE = "PGRST202"


class BackendError(Exception):
    """Base exception for housing backend client errors."""
    pass


class BackendAPIError(BackendError):
    """API returned an error response."""
    def __init__(self, status_code: int, message: str, response_body: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"Backend API error {status_code}: {message}")


class BackendConnectionError(BackendError):
    """Failed to connect to the housing backend."""
    pass


class PairingConflictError(BackendAPIError):
    """The unit is no longer vacant or an employee is already assigned."""
    pass


class ConfirmFunctionMissingError(BackendAPIError):
    """The confirmation function is not installed on the backend."""
    pass


def load_confirm_function_sql() -> str:
    """SQL that installs the confirmation function on the backend."""
    return CONFIRM_FUNCTION_SQL.read_text(encoding="utf-8")


class HousingBackendClient:
    """
    Client for the hosted housing backend.

    Features:
    - Candidate source: unassigned employees
    - Vacant-unit source: vacant units in assignment-priority order
    - Confirmation sink: one atomic server-side call per confirmed pairing
    - Automatic retry with backoff for reads
    """

    DEFAULT_TIMEOUT = 30
    CONFIRM_FUNCTION = "confirm_roommate_pairing"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ):
        """
        Initialize backend client.

        Args:
            base_url: Backend project URL (e.g., "https://housing.example.com")
            api_key: Service key for authentication
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for transient read failures
            backoff_factor: Backoff factor for retries
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

        # Writes are never retried automatically: a confirmation either
        # lands once or is reported as failed.
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
    ) -> requests.Response:
        """Make an API request with error handling."""
        url = f"{self.base_url}{endpoint}"

        logger.debug("API Request: %s %s", method, url)
        if json_data:
            logger.debug("Request body: %s", json.dumps(json_data))

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                timeout=self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            raise BackendConnectionError(
                f"Failed to connect to backend at {self.base_url}: {e}"
            ) from e
        except requests.exceptions.Timeout as e:
            raise BackendConnectionError(f"Request to backend timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise BackendError(f"Request failed: {e}") from e

        if not response.ok:
            error_body = response.text
            try:
                message = response.json().get("message", response.reason)
            except (ValueError, AttributeError):
                message = response.reason

            logger.error("API Error %d: %s", response.status_code, message)
            error_cls = PairingConflictError if response.status_code == 409 else BackendAPIError
            raise error_cls(
                status_code=response.status_code,
                message=message,
                response_body=error_body,
            )

        return response

    def _select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        """Read rows from a table."""
        response = self._request("GET", f"/rest/v1/{table}", params={"select": "*", **params})
        data = response.json()
        if not isinstance(data, list):
            raise BackendError(f"Unexpected response for {table}: expected a list of rows")
        return data

    def test_connection(self) -> bool:
        """Test connection to the backend API."""
        try:
            self._request("GET", "/rest/v1/units", params={"select": "id", "limit": "1"})
            return True
        except BackendError as e:
            logger.warning("Backend connection test failed: %s", e)
            return False

    def list_unassigned_employees(self) -> list[EmployeeRecord]:
        """Fetch every employee not yet assigned to housing, oldest first."""
        rows = self._select(
            "employees",
            {"is_assigned": "eq.false", "order": "created_at.asc"},
        )
        return [EmployeeRecord.from_api_response(row) for row in rows]

    def list_vacant_units(self) -> list[UnitRecord]:
        """
        Fetch vacant units, oldest first.

        The order is the assignment priority: the first pairing formed gets
        the first unit. Creation time is used rather than unit_number,
        which sorts as text ("10" before "2").
        """
        rows = self._select(
            "units",
            {"status": "eq.vacant", "order": "created_at.asc"},
        )
        return [UnitRecord.from_api_response(row) for row in rows]

    def list_pairings(self, confirmed_only: bool = True) -> list[RoommatePairingRecord]:
        """Fetch roommate pairings, newest first."""
        params = {"order": "created_at.desc"}
        if confirmed_only:
            params["confirmed"] = "eq.true"
        rows = self._select("roommate_pairings", params)
        return [RoommatePairingRecord.from_api_response(row) for row in rows]

    def confirm_pairing(
        self,
        employee1_id: str,
        employee2_id: str,
        unit_id: str,
        match_score: int,
    ) -> RoommatePairingRecord:
        """
        Confirm a pairing in one server-side transaction.

        The server function marks both employees assigned to the unit, marks
        the unit occupied, and inserts the confirmed pairing row, or does
        none of it.

        Raises:
            PairingConflictError: The unit is taken or an employee is assigned.
            ConfirmFunctionMissingError: The backend lacks the function (see
                load_confirm_function_sql).
            BackendAPIError: Any other rejection.
            BackendConnectionError: The backend could not be reached.
        """
        payload = {
            "p_employee1_id": employee1_id,
            "p_employee2_id": employee2_id,
            "p_unit_id": unit_id,
            "p_match_score": match_score,
        }
        try:
            response = self._request(
                "POST", f"/rest/v1/rpc/{self.CONFIRM_FUNCTION}", json_data=payload
            )
        except BackendAPIError as e:
            if e.status_code == 404 and MISSING_FUNCTION_CODE in (e.response_body or ""):
                raise ConfirmFunctionMissingError(
                    status_code=e.status_code,
                    message=(
                        f"{self.CONFIRM_FUNCTION} is not installed on the backend; "
                        "install it with `housing-match backend-sql`"
                    ),
                    response_body=e.response_body,
                ) from e
            raise

        data = response.json()
        if isinstance(data, list):
            if not data:
                raise BackendError("Confirmation returned no pairing row")
            data = data[0]

        pairing = RoommatePairingRecord.from_api_response(data)
        logger.info(
            "Confirmed pairing %s: %s + %s -> unit %s (score %d)",
            pairing.id,
            employee1_id,
            employee2_id,
            unit_id,
            match_score,
        )
        return pairing
