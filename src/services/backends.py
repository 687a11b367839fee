"""
Spreadsheet backends: where worksheet names and used ranges come from.

Two interchangeable strategies share one contract:
- GraphSheetBackend: Excel workbook on OneDrive/SharePoint via MS Graph
- AppsScriptBackend: Google Apps Script web app returning equivalent JSON
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Protocol, TypeVar
from urllib.parse import quote

import requests
from azure.core.exceptions import ClientAuthenticationError
from kiota_abstractions.api_error import APIError
from msgraph import GraphServiceClient
from msgraph.generated.drives.item.items.item.workbook.worksheets.item.used_range.used_range_request_builder import (
    UsedRangeRequestBuilder,
)
from msgraph.generated.sites.item.site_item_request_builder import SiteItemRequestBuilder

from core.config import (
    APPS_SCRIPT_TIMEOUT_SECONDS,
    APPS_SCRIPT_URL,
    EXCEL_DRIVE_ID,
    EXCEL_FILE_ID,
    EXCEL_SITE_HOST,
    EXCEL_SITE_PATH,
    GRAPH_CLIENT_ID,
    GRAPH_CLIENT_SECRET,
    GRAPH_TENANT_ID,
    SHEET_BACKEND,
    UPSTREAM_BACKOFF_SECONDS,
    UPSTREAM_MAX_ATTEMPTS,
)
from core.errors import (
    AuthError,
    DashboardError,
    MalformedResponseError,
    UpstreamError,
    truncate_body,
)
from core.graph_client import create_graph_client
from models.bookings import Cell, UsedRange

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

T = TypeVar("T")


class SheetBackend(Protocol):
    """Read-only access to a spreadsheet's worksheets."""

    name: str

    async def list_worksheet_names(self) -> list[str]: ...

    async def fetch_used_range(self, worksheet_name: str) -> UsedRange: ...

    async def get_version(self) -> str | None: ...


# =============================================================================
# SHARED HELPERS
# =============================================================================


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    label: str,
    attempts: int = UPSTREAM_MAX_ATTEMPTS,
    backoff_seconds: float = UPSTREAM_BACKOFF_SECONDS,
) -> T:
    """
    Run an upstream call, retrying transient 5xx failures with exponential backoff.

    Auth, 4xx and malformed-response errors are raised immediately.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except UpstreamError as e:
            if not e.transient or attempt >= attempts:
                raise
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.warning(
                "%s failed with status %s (attempt %d/%d), retrying in %.2fs",
                label, e.status, attempt, attempts, delay,
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")


def quote_sheet_name(name: str) -> str:
    """Escape a worksheet name for range addressing: O'Hare -> O''Hare."""
    return name.replace("'", "''")


def worksheet_address(name: str) -> str:
    """Graph worksheet segment for a worksheet name."""
    escaped = quote(quote_sheet_name(name), safe="'")
    return f"worksheets('{escaped}')"


def split_used_range(sheet: str, values) -> UsedRange:
    """
    Split a 2-D values array into headers and rows.

    Rows shorter than the header are padded with None.
    """
    if values is None:
        values = []
    if not isinstance(values, list) or any(not isinstance(row, list) for row in values):
        raise MalformedResponseError(
            f"Used range for '{sheet}' is not a 2-D array",
            details=[truncate_body(values)],
        )
    if not values:
        return {"sheet": sheet, "headers": [], "rows": []}

    headers = ["" if h is None else str(h).strip() for h in values[0]]
    width = len(headers)
    rows: list[list[Cell]] = []
    for row in values[1:]:
        padded = list(row)
        if len(padded) < width:
            padded.extend([None] * (width - len(padded)))
        rows.append(padded)
    return {"sheet": sheet, "headers": headers, "rows": rows}


def untyped_to_python(node):
    """Unwrap kiota untyped nodes (arrays, objects, primitives) into plain Python values."""
    get_value = getattr(node, "get_value", None)
    value = get_value() if callable(get_value) else node
    if isinstance(value, list):
        return [untyped_to_python(item) for item in value]
    if isinstance(value, dict):
        return {key: untyped_to_python(item) for key, item in value.items()}
    return value


# =============================================================================
# MS GRAPH
# =============================================================================


class GraphSheetBackend:
    """
    Excel workbook stored in OneDrive/SharePoint, read through MS Graph.

    The drive hosting the workbook is resolved from the site once and cached
    on the instance.
    """

    name = "graph"

    def __init__(
        self,
        file_id: str,
        site_host: str = "",
        site_path: str = "",
        drive_id: str = "",
        graph_client: GraphServiceClient | None = None,
        tenant_id: str = "",
        client_id: str = "",
        client_secret: str = "",
        max_attempts: int = UPSTREAM_MAX_ATTEMPTS,
        backoff_seconds: float = UPSTREAM_BACKOFF_SECONDS,
    ):
        if graph_client is None:
            graph_client = create_graph_client(tenant_id, client_id, client_secret)
        if not file_id:
            raise DashboardError("MS_EXCEL_FILE_ID is not configured")
        if not drive_id and not site_host:
            raise DashboardError("Either MS_EXCEL_DRIVE_ID or MS_EXCEL_SITE_HOST must be configured")

        self.file_id = file_id
        self.site_host = site_host
        self.site_path = site_path
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._graph = graph_client
        self._drive_id: str | None = drive_id or None
        self._resolve_lock = asyncio.Lock()

    async def _call(self, request: Callable[[], Awaitable[T]], label: str) -> T:
        """Run a Graph request, mapping SDK errors onto the dashboard taxonomy."""

        async def attempt() -> T:
            try:
                return await request()
            except ClientAuthenticationError as e:
                raise AuthError(f"Graph credentials rejected: {e.message}", rejected=True) from e
            except APIError as e:
                status = e.response_status_code
                main_error = getattr(e, "error", None)
                body = getattr(main_error, "message", None) or e.message or str(e)
                if status == 401:
                    raise AuthError(f"Graph rejected the access token: {body}", rejected=True) from e
                raise UpstreamError(status, body, message=f"{label} failed with status {status}") from e

        return await with_retry(attempt, label, self.max_attempts, self.backoff_seconds)

    def site_url(self) -> str:
        """Graph URL addressing the site by host and server-relative path."""
        if self.site_path:
            return f"{GRAPH_BASE_URL}/sites/{self.site_host}:/{self.site_path.strip('/')}"
        return f"{GRAPH_BASE_URL}/sites/{self.site_host}"

    async def resolve_drive_id(self) -> str:
        """Resolve (once) the id of the drive holding the workbook."""
        if self._drive_id:
            return self._drive_id

        async with self._resolve_lock:
            if self._drive_id:
                return self._drive_id

            site_builder = SiteItemRequestBuilder(self._graph.request_adapter, self.site_url())
            site = await self._call(site_builder.get, "Get site")
            if site is None or not site.id:
                raise MalformedResponseError(f"Site lookup for {self.site_host} returned no id")

            drive = await self._call(self._graph.sites.by_site_id(site.id).drive.get, "Get drive")
            if drive is None or not drive.id:
                raise MalformedResponseError(f"Site {site.id} has no default drive")

            logger.info("Resolved workbook drive %s from site %s", drive.id, site.id)
            self._drive_id = drive.id
            return self._drive_id

    async def list_worksheet_names(self) -> list[str]:
        drive_id = await self.resolve_drive_id()
        workbook = self._graph.drives.by_drive_id(drive_id).items.by_drive_item_id(self.file_id).workbook
        response = await self._call(workbook.worksheets.get, "List worksheets")
        if response is None:
            raise MalformedResponseError("Worksheet listing returned an empty body")

        worksheets = response.value if response.value else []
        return [ws.name for ws in worksheets if ws.name]

    def used_range_url(self, drive_id: str, worksheet_name: str) -> str:
        return (
            f"{GRAPH_BASE_URL}/drives/{drive_id}/items/{quote(self.file_id, safe='')}"
            f"/workbook/{worksheet_address(worksheet_name)}/usedRange(valuesOnly=true)"
        )

    async def fetch_used_range(self, worksheet_name: str) -> UsedRange:
        drive_id = await self.resolve_drive_id()
        builder = UsedRangeRequestBuilder(
            self._graph.request_adapter, self.used_range_url(drive_id, worksheet_name)
        )
        workbook_range = await self._call(builder.get, f"Read used range of '{worksheet_name}'")
        values = untyped_to_python(workbook_range.values) if workbook_range is not None else None
        return split_used_range(worksheet_name, values)

    async def get_version(self) -> str | None:
        return None


# =============================================================================
# GOOGLE APPS SCRIPT
# =============================================================================


class AppsScriptBackend:
    """
    Google Apps Script web app exposing the same data as JSON.

    fn=sheetNames     -> ["Jan", "Feb", ...]
    fn=sheetData      -> {"headers": [...], "rows": [[...]]} or a bare 2-D array
    fn=getVersion     -> "v1"
    """

    name = "apps_script"

    def __init__(
        self,
        url: str,
        timeout: float = APPS_SCRIPT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
        max_attempts: int = UPSTREAM_MAX_ATTEMPTS,
        backoff_seconds: float = UPSTREAM_BACKOFF_SECONDS,
    ):
        if not url:
            raise DashboardError("APPS_SCRIPT_URL is not configured")
        self.url = url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._session = session or requests.Session()

    def _get_text(self, params: dict) -> str:
        """Blocking GET; runs in a worker thread."""
        try:
            response = self._session.get(
                self.url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(None, str(e), message=f"Apps Script request failed: {e}") from e

        if not response.ok:
            raise UpstreamError(
                response.status_code,
                response.text,
                message=f"Apps Script returned HTTP {response.status_code}",
            )
        return response.text

    def _get_json(self, params: dict):
        text = self._get_text(params)
        # An HTML body usually means the web app redirected to a sign-in page
        if text.lstrip().startswith("<"):
            raise MalformedResponseError(
                "Apps Script returned HTML instead of JSON", details=[truncate_body(text)]
            )
        try:
            return json.loads(text)
        except ValueError as e:
            raise MalformedResponseError(
                "Apps Script response is not valid JSON", details=[truncate_body(text)]
            ) from e

    async def _request(self, params: dict, label: str, parse_json: bool = True):
        reader = self._get_json if parse_json else self._get_text
        return await with_retry(
            lambda: asyncio.to_thread(reader, params),
            label,
            self.max_attempts,
            self.backoff_seconds,
        )

    async def list_worksheet_names(self) -> list[str]:
        data = await self._request({"fn": "sheetNames"}, "List worksheets")
        if not isinstance(data, list):
            raise MalformedResponseError(
                "Worksheet listing is not an array", details=[truncate_body(data)]
            )
        return [str(name).strip() for name in data if name is not None and str(name).strip()]

    async def fetch_used_range(self, worksheet_name: str) -> UsedRange:
        data = await self._request(
            {"fn": "sheetData", "sheet": worksheet_name},
            f"Read used range of '{worksheet_name}'",
        )
        if isinstance(data, dict) and "headers" in data:
            headers = data.get("headers") or []
            rows = data.get("rows") or []
            if not isinstance(headers, list) or not isinstance(rows, list):
                raise MalformedResponseError(f"Sheet data for '{worksheet_name}' has an invalid shape")
            values = [headers, *rows] if headers else []
        elif isinstance(data, dict) and "values" in data:
            values = data["values"]
        elif isinstance(data, list):
            values = data
        else:
            raise MalformedResponseError(
                f"Sheet data for '{worksheet_name}' has an unexpected shape",
                details=[truncate_body(data)],
            )
        return split_used_range(worksheet_name, values)

    async def get_version(self) -> str | None:
        text = await self._request({"fn": "getVersion"}, "Get version", parse_json=False)
        return text.replace('"', "").strip() or None


# =============================================================================
# FACTORY
# =============================================================================


def create_backend(kind: str = SHEET_BACKEND) -> SheetBackend:
    """
    Build the configured backend.

    Raises:
        AuthError: Graph credentials are missing (before any network call)
        DashboardError: the backend kind or its addressing is not configured
    """
    if kind == "graph":
        return GraphSheetBackend(
            file_id=EXCEL_FILE_ID,
            site_host=EXCEL_SITE_HOST,
            site_path=EXCEL_SITE_PATH,
            drive_id=EXCEL_DRIVE_ID,
            tenant_id=GRAPH_TENANT_ID,
            client_id=GRAPH_CLIENT_ID,
            client_secret=GRAPH_CLIENT_SECRET,
        )
    if kind == "apps_script":
        return AppsScriptBackend(APPS_SCRIPT_URL)
    raise DashboardError(f"Unknown SHEET_BACKEND '{kind}' (expected 'graph' or 'apps_script')")
