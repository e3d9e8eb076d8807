"""NetBird management API event source."""
import httpx
import orjson
import structlog
from pydantic import TypeAdapter, ValidationError
from .base import EventSource
from ..event_models import Event
from ..errors import SourceMalformed, SourceUnavailable

log = structlog.get_logger()

_EVENT_LIST = TypeAdapter(list[Event])


def normalize_base_url(base_url: str) -> str:
    """Strip trailing slashes and a trailing ``/api`` segment."""
    base_url = base_url.rstrip("/")
    if base_url.endswith("/api"):
        base_url = base_url[: -len("/api")].rstrip("/")
    return base_url


class NetbirdClient(EventSource):
    """Fetches the account activity log from ``GET /api/events``.

    The endpoint returns the whole log on every call; deduplication is the
    caller's job.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the NetBird client.

        Args:
            base_url: Management API URL, with or without a trailing ``/api``
            token: Personal access token
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = normalize_base_url(base_url)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Token {token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def fetch(self) -> list[Event]:
        """
        Fetch all events currently returned by the API.

        Raises:
            SourceUnavailable: On transport errors or a non-2xx status
            SourceMalformed: If the body is not a JSON array of events
        """
        try:
            response = await self._client.get("/api/events")
        except httpx.HTTPError as e:
            log.error("source.request_failed", error=str(e), error_type=e.__class__.__name__)
            raise SourceUnavailable(f"failed to send request to NetBird API: {e}") from e

        if not response.is_success:
            log.error("source.bad_status", status_code=response.status_code, body=response.text)
            raise SourceUnavailable(
                f"NetBird API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            events = _EVENT_LIST.validate_python(orjson.loads(response.content))
        except (orjson.JSONDecodeError, ValidationError) as e:
            log.error("source.decode_failed", error=str(e))
            raise SourceMalformed(f"failed to parse NetBird API response: {e}") from e

        log.debug("source.fetched", count=len(events))
        return events

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
