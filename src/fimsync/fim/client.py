"""FIM Service REST gateway client.

Handles authentication, querying and submission of change requests.

Architecture Overview:
---------------------
This client wraps a REST gateway in front of the FIM/MIM Service, providing:
- Async HTTP communication via httpx
- Automatic retry with exponential backoff for transient network failures
  on read-only requests (submissions are never resent)
- Rate limit handling that honours Retry-After
- XPath queries with transparent pagination
- Submission of ImportObject batches

Authentication:
--------------
The gateway accepts HTTP Basic credentials on every request. There is no
session endpoint, so a rejected credential (401) is final.

Common Endpoint Patterns:
------------------------
- GET  /resources?filter=<xpath>&attributes=A,B  - Query resources
- POST /importobjects                            - Submit ImportObjects
"""

import asyncio
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx
import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import FIMConfig
from ..constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MAX_QUERY_PAGES
from ..models.changes import ChangeRequest
from ..observability.metrics import get_global_collector
from ..utils.exceptions import (
    FIMAPIError,
    FIMAuthenticationError,
    FIMRateLimitError,
    ResourceNotFoundError,
)
from .endpoints import (
    IDENTITY_ATTRIBUTES,
    SCHEMA_ATTRIBUTES,
    FIMEndpoints,
    FIMFilters,
    build_filter,
    escape_filter_value,
)
from .requests import submission_batch, to_import_object
from .response_models import ErrorResponse, ImportResultResponse, PaginatedResponse, ResourceResponse

logger = structlog.get_logger(__name__)

MAX_RATE_LIMIT_RETRIES = 3

# Methods safe to resend after a transport failure; submissions are sent once
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class FIMClient:
    """
    FIM Service REST gateway client.

    Features:
    - Basic authentication
    - Automatic retries with exponential backoff for queries
    - Rate limit handling
    - Paginated XPath queries
    - Connection pooling via httpx.AsyncClient
    """

    def __init__(self, config: FIMConfig):
        """
        Initialize the client.

        Args:
            config: FIM configuration with connection details
        """
        self.config = config
        self.base_url = f"{config.base_url.rstrip('/')}/api/{config.api_version}"

        self._client: httpx.AsyncClient | None = None  # Lazy-loaded

        self.collector = get_global_collector()

    async def __aenter__(self):
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client with lazy initialization."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                auth=httpx.BasicAuth(self.config.username, self.config.password),
                verify=self.config.verify_ssl,
                timeout=self.config.timeout,
                limits=httpx.Limits(
                    max_connections=self.config.max_connections,
                    max_keepalive_connections=self.config.max_keepalive,
                ),
            )
        return self._client

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    @retry(
        retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _send_with_retry(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        json: Any,
    ) -> httpx.Response:
        return await self._send(method, url, params, json)

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        json: Any,
    ) -> httpx.Response:
        return await self.client.request(method, url, params=params, json=json)

    async def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        _rate_limit_retries: int = 0,
    ) -> Any:
        """
        Make an authenticated request to the gateway.

        Args:
            method: HTTP method (GET, POST, ...)
            endpoint: API endpoint (relative to base URL)
            params: Query parameters
            json: JSON body
            _rate_limit_retries: Internal recursion counter. DO NOT USE EXTERNALLY.

        Returns:
            Parsed JSON response (None for 204)

        Raises:
            FIMAuthenticationError: For 401 Unauthorized
            FIMRateLimitError: For 429 Too Many Requests (after max retries)
            ResourceNotFoundError: For 404 Not Found
            FIMAPIError: For any other API or transport error
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        self.collector.backend.increment("fim_api_requests_total", tags={"method": method})
        start_time = asyncio.get_event_loop().time()

        try:
            if method.upper() in IDEMPOTENT_METHODS:
                response = await self._send_with_retry(method, url, params, json)
            else:
                response = await self._send(method, url, params, json)
        except httpx.HTTPError as e:
            raise FIMAPIError(f"HTTP request failed: {e}") from e

        duration = (asyncio.get_event_loop().time() - start_time) * 1000
        self.collector.backend.timing("fim_api_latency_ms", duration, tags={"method": method})

        if response.status_code == 429:
            retry_after = int(response.headers.get("Retry-After", 5))

            if _rate_limit_retries >= MAX_RATE_LIMIT_RETRIES:
                logger.error(
                    "Rate limit retries exhausted",
                    retries=_rate_limit_retries,
                    endpoint=endpoint,
                )
                raise FIMRateLimitError(retry_after)

            logger.warning(
                "Rate limited, waiting before retry",
                retry_after=retry_after,
                attempt=_rate_limit_retries + 1,
                max_retries=MAX_RATE_LIMIT_RETRIES,
                endpoint=endpoint,
            )
            await asyncio.sleep(retry_after)
            return await self.request(
                method,
                endpoint,
                params=params,
                json=json,
                _rate_limit_retries=_rate_limit_retries + 1,
            )

        if response.is_error:
            message = self._error_message(response)

            if response.status_code == 401:
                logger.error("Authentication failed", endpoint=endpoint)
                raise FIMAuthenticationError(f"Authentication failed: {message}")
            if response.status_code == 404:
                raise ResourceNotFoundError(f"Resource ({endpoint})", message)
            raise FIMAPIError(
                f"API Error {response.status_code}: {message}", status_code=response.status_code
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _error_message(self, response: httpx.Response) -> str:
        """Extract the most useful message from an error response."""
        if response.headers.get("content-type", "").startswith("application/json"):
            try:
                data = response.json()
            except ValueError:
                return response.text
            if isinstance(data, dict):
                try:
                    return ErrorResponse.model_validate(data).get_full_message()
                except ValidationError:
                    return response.text
        return response.text

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Helper for GET requests."""
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json: Any) -> Any:
        """Helper for POST requests."""
        return await self.request("POST", endpoint, json=json)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def query(
        self,
        xpath: str,
        attributes: list[str] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = MAX_QUERY_PAGES,
    ) -> list[dict[str, Any]]:
        """
        Run an XPath query and return every matching resource.

        Follows _links.next until the last page.

        Args:
            xpath: FIM XPath filter, e.g. /Person[EmployeeID='100123']
            attributes: Attributes to project (default: all the gateway returns)
            page_size: Items per page (capped at MAX_PAGE_SIZE)
            max_pages: Maximum pages to fetch (prevents infinite loops)

        Returns:
            List of resource dictionaries across all pages
        """
        params: dict[str, Any] = {"filter": xpath, "limit": min(page_size, MAX_PAGE_SIZE)}
        if attributes:
            params["attributes"] = ",".join(attributes)

        logger.debug("Querying directory", filter=xpath)

        items: list[dict[str, Any]] = []
        endpoint = FIMEndpoints.RESOURCES
        seen_requests: set[str] = set()
        page_count = 0

        while endpoint:
            page_count += 1
            if page_count > max_pages:
                logger.warning(
                    "Pagination safety limit reached",
                    max_pages=max_pages,
                    filter=xpath,
                    items_fetched=len(items),
                )
                break

            # Some gateways return a next link pointing at the current page
            request_key = endpoint + "?" + "&".join(f"{k}={v}" for k, v in sorted(params.items()))
            if request_key in seen_requests:
                logger.warning("Pagination loop detected", endpoint=endpoint, filter=xpath)
                break
            seen_requests.add(request_key)

            response = await self.get(endpoint, params=params) or {}
            if isinstance(response, list):
                # Unpaged gateways return a bare list
                items.extend(response)
                break

            try:
                page = PaginatedResponse.model_validate(response)
            except ValidationError as e:
                logger.warning(
                    "Paginated response validation failed",
                    filter=xpath,
                    validation_errors=e.errors(),
                )
                items.extend(response.get("results", []) if isinstance(response, dict) else [])
                break

            items.extend(page.results)

            next_url = page.links.get_next_href() if page.links else None
            if next_url:
                endpoint, params = self._parse_next_url(next_url)
            else:
                endpoint = ""

        logger.debug("Query complete", filter=xpath, pages=page_count, items=len(items))
        return items

    def _parse_next_url(self, next_url: str) -> tuple[str, dict[str, Any]]:
        """
        Parse a next page URL into endpoint and parameters.

        Handles both relative and absolute URLs.

        Args:
            next_url: The next page URL from _links

        Returns:
            Tuple of (endpoint, params)
        """
        parsed = urlparse(next_url)
        path = parsed.path
        marker = f"/api/{self.config.api_version}/"
        if marker in path:
            path = path.split(marker, 1)[1]
        endpoint = path.lstrip("/")

        query_params = parse_qs(parsed.query)
        params = {k: v[0] if len(v) == 1 else v for k, v in query_params.items()}
        return endpoint, params

    async def find_object_ids(self, object_type: str, attribute: str, value: str) -> list[str]:
        """
        Return the ObjectIDs of every object whose attribute equals value.

        Args:
            object_type: Object type to search
            attribute: Attribute to compare
            value: Value to match

        Returns:
            List of ObjectIDs (empty when nothing matches)
        """
        self.collector.backend.increment("reference_lookups_total", tags={"type": object_type})
        results = await self.query(
            build_filter(object_type, attribute, value), attributes=IDENTITY_ATTRIBUTES
        )

        object_ids = []
        for item in results:
            try:
                object_ids.append(ResourceResponse.model_validate(item).ObjectID)
            except ValidationError as e:
                logger.warning(
                    "Query result without ObjectID ignored",
                    object_type=object_type,
                    validation_errors=e.errors(),
                )
        return object_ids

    async def get_bound_attributes(self, object_type: str) -> list[dict[str, Any]]:
        """
        Fetch the AttributeTypeDescriptions bound to an object type.

        Args:
            object_type: Object type name, e.g. "Person"

        Returns:
            Raw attribute descriptions (Name, DataType, Multivalued)
        """
        xpath = FIMFilters.BOUND_ATTRIBUTES.format(
            object_type=escape_filter_value(object_type)
        )
        return await self.query(xpath, attributes=SCHEMA_ATTRIBUTES)

    async def ping(self) -> None:
        """Check connectivity and credentials with a one-item query."""
        await self.get(FIMEndpoints.RESOURCES, params={"filter": FIMFilters.PING, "limit": 1})
        logger.info("Connected to FIM Service", url=self.base_url)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    async def submit(self, requests: ChangeRequest | list[ChangeRequest]) -> list[str]:
        """
        Submit one request (with its Resolve dependencies) or a list of requests.

        All requests go out in a single call so the service can resolve
        placeholders between them.

        Args:
            requests: A request, or an explicit list of requests

        Returns:
            ObjectIDs reported by the service (may be empty)
        """
        batch = submission_batch(requests) if isinstance(requests, ChangeRequest) else requests
        body = [to_import_object(r) for r in batch]

        logger.debug(
            "Submitting import objects",
            count=len(body),
            states=[obj["State"] for obj in body],
        )
        response = await self.post(FIMEndpoints.IMPORT_OBJECTS, json=body)

        if not isinstance(response, dict):
            return []
        try:
            return ImportResultResponse.model_validate(response).objectIds
        except ValidationError as e:
            logger.warning(
                "Import response validation failed, using raw data",
                validation_errors=e.errors(),
            )
            return list(response.get("objectIds") or [])
