# =============================================================================
# dokan_core/remote/rest_service.py
# HTTP client for the Dokan Hisab REST server
# =============================================================================
"""
RestDataService - talks to the Express-style REST surface:

    GET  /api/dashboard/:userId
    GET  /api/customers/:userId              POST /api/customers/:userId
    GET  /api/products/:userId               POST /api/products/:userId
    GET  /api/products/:userId/low-stock
    GET  /api/sales/:userId?limit=N          POST /api/sales/:userId
    GET  /api/sales/:userId/today
    GET  /api/expenses/:userId?limit=N       POST /api/expenses/:userId
    GET  /api/collections/:userId?limit=N    POST /api/collections/:userId
    POST /api/users                          GET  /api/users/:username

The server speaks camelCase JSON; records are converted to and from the
snake_case names used locally.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from dokan_core.errors import RemoteServiceError, RemoteValidationError
from dokan_core.logging import get_logger
from dokan_core.models.entities import DashboardStats, Entity
from dokan_core.remote.base import Record, RemoteDataService

logger = get_logger(__name__)

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _convert(value: Any, convert_key) -> Any:
    if isinstance(value, dict):
        return {convert_key(k): _convert(v, convert_key) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v, convert_key) for v in value]
    return value


@dataclass
class RestConfig:
    """Connection settings for the REST server"""
    base_url: str
    timeout: int = 15
    headers: Optional[Dict[str, str]] = None


class RestDataService(RemoteDataService):
    """requests-based client for the REST surface."""

    name = "rest"

    def __init__(self, config: RestConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if config.headers:
            self.session.headers.update(config.headers)

    def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict] = None,
        data: Optional[Dict] = None,
        operation: Optional[str] = None,
    ) -> requests.Response:
        """
        Make an HTTP request and map failures onto the error taxonomy.

        Raises:
            RemoteValidationError: the server answered 400
            RemoteServiceError: transport failure or any other error status
        """
        url = f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        operation = operation or f"{method} {endpoint}"

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteServiceError(f"Request failed: {e}", operation=operation) from e

        if response.status_code == 400:
            raise RemoteValidationError(self._error_message(response), operation=operation)
        if response.status_code >= 400:
            raise RemoteServiceError(
                self._error_message(response),
                operation=operation,
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json().get("message") or response.reason
        except ValueError:
            return response.reason or f"HTTP {response.status_code}"

    def _get_list(self, endpoint: str, params: Optional[Dict] = None, operation: Optional[str] = None) -> List[Record]:
        body = self._make_request(endpoint, params=params, operation=operation).json()
        if not isinstance(body, list):
            raise RemoteServiceError("Expected a JSON list", operation=operation or endpoint)
        return _convert(body, to_snake)

    # =========================================================================
    # PRIMITIVES
    # =========================================================================

    def list_records(self, entity: str, owner_id: str, limit: Optional[int] = None) -> List[Record]:
        params = {"limit": limit} if limit else None
        return self._get_list(f"api/{entity}/{owner_id}", params=params, operation=f"get_{entity}")

    def create_record(self, entity: str, owner_id: str, payload: Record) -> Record:
        response = self._make_request(
            f"api/{entity}/{owner_id}",
            method="POST",
            data=_convert(payload, to_camel),
            operation=f"create_{entity}",
        )
        return _convert(response.json(), to_snake)

    def update_record(self, entity: str, record_id: str, fields: Record) -> Optional[Record]:
        raise RemoteServiceError(
            f"The REST server has no update route for {entity}",
            operation=f"update_{entity}",
        )

    def get_stats(self, owner_id: str) -> DashboardStats:
        body = self._make_request(f"api/dashboard/{owner_id}", operation="get_stats").json()
        return DashboardStats.from_mapping(body)

    def get_low_stock_products(self, owner_id: str) -> List[Record]:
        return self._get_list(
            f"api/{Entity.PRODUCTS.value}/{owner_id}/low-stock", operation="get_low_stock_products"
        )

    def get_today_sales(self, owner_id: str) -> List[Record]:
        return self._get_list(f"api/{Entity.SALES.value}/{owner_id}/today", operation="get_today_sales")

    def create_user(self, payload: Record) -> Record:
        response = self._make_request("api/users", method="POST", data=_convert(payload, to_camel), operation="create_user")
        return _convert(response.json(), to_snake)

    def get_user_by_username(self, username: str) -> Optional[Record]:
        try:
            response = self._make_request(f"api/users/{username}", operation="get_user_by_username")
        except RemoteServiceError as e:
            if e.status_code == 404:
                return None
            raise
        return _convert(response.json(), to_snake)
