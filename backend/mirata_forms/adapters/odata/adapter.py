"""Mirata OData service adapter implementation.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

# Third-party (alphabetical)
import httpx
import logfire
from pydantic import Field
from pydantic_settings import SettingsConfigDict

# Local imports (core first, then alphabetical)
from mirata_forms.core.constants import DEFAULT_SERVICE_URL, MAX_RETRIES, RETRY_DELAY_SECONDS
from mirata_forms.core.exceptions import (
    AuthenticationError,
    EntityNotFoundError,
    ODataRequestError,
    ServiceConnectionError,
)
from mirata_forms.core.models import ActionRequest, ActionResult
from mirata_forms.core.protocols import ODataService
from mirata_forms.core.settings import MirataSettings
from mirata_forms.infra.instrumentation import Metrics

if TYPE_CHECKING:
    from mirata_forms.core.query import ODataQuery
    from mirata_forms.core.types import JsonDict

__all__ = ('ODataAdapter', 'ODataSettings')

_METHODS: Final[dict[str, str]] = {
    'create': 'POST',
    'update': 'PATCH',
    'delete': 'DELETE',
    'undo': 'DELETE',
}


class ODataSettings(MirataSettings):
    """Settings for the Mirata OData adapter.

    Environment variables are prefixed with MIRATA_.
    """

    model_config = SettingsConfigDict(env_prefix='MIRATA_')

    base_url: str = Field(default=DEFAULT_SERVICE_URL, description='Root URL of the Mirata OData service')
    username: str | None = Field(default=None, description='Basic auth user name')
    password: str | None = Field(default=None, description='Basic auth password')
    timeout: int = Field(default=30, ge=1, description='HTTP timeout in seconds')
    max_retries: int = Field(default=MAX_RETRIES, ge=1, description='Attempts per request on transport errors')
    retry_delay: float = Field(default=RETRY_DELAY_SECONDS, ge=0.0, description='Linear backoff step (seconds)')


@dataclass
class ODataAdapter(ODataService):
    """Remote Mirata OData service.

    Implements the ODataService protocol over HTTP. Reads issue GET requests
    with rendered system query options; actions map to POST, PATCH and DELETE.

    Example:
        >>> config = ODataSettings(base_url='https://forms.example.com/odata')
        >>> async with ODataAdapter(config) as service:
        ...     rows = await service.read('Definitions', ODataQuery().top(5))
    """

    config: ODataSettings
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)
    _client: httpx.AsyncClient = field(init=False, repr=False)

    def __post_init__(self) -> None:
        auth = (self.config.username, self.config.password or '') if self.config.username else None
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            auth=auth,
            transport=self.transport,
            headers={'Accept': 'application/json'},
        )

    async def __aenter__(self) -> ODataAdapter:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def service_name(self) -> str:
        return 'mirata'

    async def read(self, entity_set: str, query: ODataQuery | None = None) -> list[JsonDict]:
        """Read entities from the remote entity set."""
        params = query.to_params() if query is not None else {}
        with logfire.span('odata.read', entity_set=entity_set, query=query.render() if query is not None else ''):
            path = f'/{entity_set}'
            response = await self._request('GET', path, params=params)
            self._check(response, 'GET', path, entity_set)

            payload = response.json()
            if isinstance(payload, dict):
                rows = payload.get('value', [])
            else:
                rows = payload
            if not isinstance(rows, list):
                logfire.warning('unexpected_read_payload', entity_set=entity_set, type=type(rows).__name__)
                return []
            return [row for row in rows if isinstance(row, dict)]

    async def execute(self, action: ActionRequest) -> ActionResult:
        """Execute an action against the remote service."""
        method = _METHODS[action.kind]
        if action.kind == 'create':
            path = f'/{action.entity_set}'
        else:
            if not action.read_link:
                raise ODataRequestError(method, action.entity_set, 400, f'{action.name} requires a read link')
            path = f'/{action.read_link}'

        with logfire.span('odata.execute', action=action.name, kind=action.kind, path=path):
            started = time.perf_counter()
            success = False
            try:
                response = await self._request(
                    method,
                    path,
                    json=action.properties if method != 'DELETE' else None,
                    headers=_header_values(action.headers),
                )
                self._check(response, method, path, action.entity_set)
                success = True
            finally:
                Metrics.record_action(
                    action.name, action.entity_set, (time.perf_counter() - started) * 1000, success
                )

            entity = response.json() if response.content else None
            return ActionResult(action=action.name, entity=entity if isinstance(entity, dict) else None)

    # =========================================================================
    # Private Methods
    # =========================================================================
    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a request, retrying transport failures with linear backoff."""
        for attempt in range(self.config.max_retries):
            try:
                return await self._client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                if attempt == self.config.max_retries - 1:
                    raise ServiceConnectionError(self.service_name, str(e)) from e
                logfire.warning('odata_request_retry', method=method, path=path, attempt=attempt + 1, error=str(e))
                await asyncio.sleep(self.config.retry_delay * (attempt + 1))

        raise ServiceConnectionError(self.service_name, 'Max retries exceeded')

    def _check(self, response: httpx.Response, method: str, path: str, entity_set: str) -> None:
        """Map error statuses onto the exception hierarchy."""
        if response.is_success:
            return
        if response.status_code in (401, 403):
            raise AuthenticationError(self.service_name, f'{method} {path} rejected ({response.status_code})')
        if response.status_code == 404 and method != 'GET':
            raise EntityNotFoundError(entity_set, path.lstrip('/'))
        raise ODataRequestError(method, path, response.status_code, response.text[:500])


def _header_values(headers: dict[str, Any]) -> dict[str, str]:
    """HTTP header values must be strings; booleans use OData spelling."""
    rendered: dict[str, str] = {}
    for key, value in headers.items():
        if isinstance(value, bool):
            rendered[key] = 'true' if value else 'false'
        elif value is not None:
            rendered[key] = str(value)
    return rendered
