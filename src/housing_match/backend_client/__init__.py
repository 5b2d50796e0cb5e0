"""
Housing backend API client.

Provides:
- Unassigned employees (candidate source)
- Vacant units (unit source, ordered by assignment priority)
- Confirmed pairings listing
- Atomic pairing confirmation via a server-side function
  (installed from sql/confirm_roommate_pairing.sql)
- Retry/backoff for transient read failures
"""

from .client import (
    BackendAPIError,
    BackendConnectionError,
    BackendError,
    ConfirmFunctionMissingError,
    HousingBackendClient,
    PairingConflictError,
    load_confirm_function_sql,
)

__all__ = [
    "BackendAPIError",
    "BackendConnectionError",
    "BackendError",
    "ConfirmFunctionMissingError",
    "HousingBackendClient",
    "PairingConflictError",
    "load_confirm_function_sql",
]
