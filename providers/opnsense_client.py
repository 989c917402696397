"""
providers/opnsense_client.py

Responsibility: Implements the GslbProvider protocol using the OPNsense Unbound
host override REST API (https://{host}/api/unbound/...). Steers exactly one
host override between the primary and secondary addresses and reloads Unbound
after every change.
Does NOT: run health checks, decide when to switch, or schedule jobs.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from exceptions import ProviderError, RecordStateError
from providers.gslb_provider import FailoverTargets, Target, same_ip

logger = logging.getLogger(__name__)

# API paths; exported so tests can construct expected URLs without duplicating them.
_SEARCH_PATH = "/api/unbound/settings/searchHostOverride/"
_GET_PATH = "/api/unbound/settings/getHostOverride/"
_SET_PATH = "/api/unbound/settings/setHostOverride/"
_RECONFIGURE_PATH = "/api/unbound/service/reconfigure"

# Per-request timeout for firewall API calls, in seconds
_REQUEST_TIMEOUT = 10.0

# Number of search rows requested when locating the record
_SEARCH_ROW_COUNT = 10


class OpnSenseProvider:
    """
    Implements GslbProvider for one OPNsense Unbound host override.

    The override is located by hostname once at startup (see create()); its
    UUID is kept for the process lifetime. Everything else is read fresh from
    the firewall on every call because the record may be edited out-of-band.

    Collaborators:
        - httpx.AsyncClient: injected HTTP client; kept alive externally
        - GslbProvider: this class satisfies the protocol contract
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        host: str,
        auth: str,
        targets: FailoverTargets,
        record_uuid: str = "",
    ) -> None:
        """
        Initialises the client without touching the network.

        Prefer create(), which also locates the record UUID.

        Args:
            http_client: A long-lived httpx.AsyncClient instance.
            host: Base URL of the firewall, e.g. "https://fw.example.lan".
            auth: API credentials as "key:secret".
            targets: The primary/secondary addresses to switch between.
            record_uuid: UUID of the host override, if already known.
        """
        self._client = http_client
        # Strip trailing slash to avoid double-slash URLs.
        self._base = host.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if auth:
            encoded = base64.b64encode(auth.encode()).decode()
            self._headers["Authorization"] = f"Basic {encoded}"
        self._targets = targets
        self.record_uuid = record_uuid

    @classmethod
    async def create(
        cls,
        http_client: httpx.AsyncClient,
        host: str,
        auth: str,
        targets: FailoverTargets,
        hostname: str,
    ) -> OpnSenseProvider:
        """
        Builds a provider and locates the host override for the given name.

        Args:
            http_client: A long-lived httpx.AsyncClient instance.
            host: Base URL of the firewall.
            auth: API credentials as "key:secret".
            targets: The primary/secondary addresses to switch between.
            hostname: The managed name, either "host" or "host.domain".

        Returns:
            A ready-to-use OpnSenseProvider.

        Raises:
            RecordStateError: If zero or several matching A/AAAA overrides exist.
            ProviderError: If the search call fails.
        """
        provider = cls(http_client, host, auth, targets)
        provider.record_uuid = await provider.find_record_uuid(hostname)
        logger.info("Managing Unbound host override %s (uuid=%s).", hostname, provider.record_uuid)
        return provider

    # ---------------------------------------------------------------------------
    # GslbProvider implementation
    # ---------------------------------------------------------------------------

    async def get_current_ip(self) -> str:
        """
        Returns the server address of the managed host override.

        Returns:
            The address the override currently resolves to.

        Raises:
            RecordStateError: If no A/AAAA resource record is selected, or one
                is selected but no server address is configured.
            ProviderError: If the API call fails.
        """
        host = await self._get_host_override()
        rr = self._selected_rr(host)
        server = host.get("server") or ""
        if not server:
            raise RecordStateError(
                f"host override record has {rr} record selected but no server IP set"
            )
        return server

    async def switch_to_primary_ip(self) -> None:
        """
        Points the override at the primary address and reloads Unbound.

        Raises:
            RecordStateError: If the override has no A/AAAA record selected.
            ProviderError: If saving or reloading fails.
        """
        await self._switch_to(Target.PRIMARY)

    async def switch_to_secondary_ip(self) -> None:
        """
        Points the override at the secondary address and reloads Unbound.

        Raises:
            RecordStateError: If the override has no A/AAAA record selected.
            ProviderError: If saving or reloading fails.
        """
        await self._switch_to(Target.SECONDARY)

    # ---------------------------------------------------------------------------
    # Record lookup
    # ---------------------------------------------------------------------------

    async def find_record_uuid(self, hostname: str) -> str:
        """
        Searches the host overrides for exactly one A/AAAA entry named hostname.

        A row matches when its hostname equals the name, or when
        "hostname.domain" equals it. MX and other resource records are ignored.

        Args:
            hostname: The managed name, either "host" or "host.domain".

        Returns:
            The UUID of the matching host override.

        Raises:
            RecordStateError: If no row or more than one row matches.
            ProviderError: If the search call fails.
        """
        payload = {"rowCount": _SEARCH_ROW_COUNT, "searchPhrase": hostname}
        data = await self._request("POST", _SEARCH_PATH, "searchHostOverride", json=payload)

        uuid = ""
        for row in data.get("rows") or []:
            rr = row.get("rr") or ""
            if not (rr.startswith("A ") or rr.startswith("AAAA ")):
                continue
            row_host = row.get("hostname") or ""
            if row_host == hostname or f"{row_host}.{row.get('domain') or ''}" == hostname:
                if uuid:
                    raise RecordStateError(f"multiple GSLB records found for hostname {hostname}")
                uuid = row.get("uuid") or ""

        if not uuid:
            raise RecordStateError(f"no GSLB record found for hostname {hostname}")
        return uuid

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _switch_to(self, target: Target) -> None:
        ip = self._targets.ip_for(target)
        host = await self._get_host_override()
        rr = self._selected_rr(host)

        if same_ip(host.get("server") or "", ip):
            # Saving would still force an Unbound reload; nothing to change.
            logger.debug("Host override already serves %s; skipping write.", ip)
            return

        payload: dict[str, Any] = {
            "host": {
                "enabled": host.get("enabled", ""),
                "hostname": host.get("hostname", ""),
                "domain": host.get("domain", ""),
                "rr": rr,
                "mxprio": host.get("mxprio", ""),
                "mx": host.get("mx", ""),
                "ttl": host.get("ttl", ""),
                "server": ip,
                "description": host.get("description", ""),
            }
        }
        logger.debug("setHostOverride %s server=%s", self.record_uuid, ip)
        data = await self._request(
            "POST", f"{_SET_PATH}{self.record_uuid}", "setHostOverride", json=payload
        )
        if data.get("result") != "saved":
            raise ProviderError(
                f"setHostOverride request failed: unexpected result {data.get('result')}"
            )

        await self._reconfigure_unbound()
        logger.info("Host override now points at %s address %s.", target.value, ip)

    async def _reconfigure_unbound(self) -> None:
        data = await self._request("POST", _RECONFIGURE_PATH, "reconfigure")
        if data.get("response") != "OK":
            raise ProviderError(
                f"reconfigure request failed: unexpected result {data.get('response')}"
            )

    async def _get_host_override(self) -> dict[str, Any]:
        data = await self._request("GET", f"{_GET_PATH}{self.record_uuid}", "getHostOverride")
        host = data.get("host")
        if not isinstance(host, dict):
            raise ProviderError("getHostOverride response has no host object")
        return host

    @staticmethod
    def _selected_rr(host: dict[str, Any]) -> str:
        """
        Returns "A" or "AAAA" depending on which resource record is selected.

        Args:
            host: The "host" object of a getHostOverride response.

        Returns:
            "A" or "AAAA".

        Raises:
            RecordStateError: If neither is selected.
        """
        rr = host.get("rr") or {}
        for rr_type in ("A", "AAAA"):
            option = rr.get(rr_type) or {}
            if str(option.get("selected", 0)) == "1":
                return rr_type
        raise RecordStateError("host override record has no A or AAAA record selected")

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Executes an API call and returns the parsed JSON body.

        Args:
            method: HTTP method string ("GET" or "POST").
            path: API path appended to the firewall base URL.
            operation: Short API name used in error messages.
            json: Optional JSON request body.

        Returns:
            Parsed JSON response as a dict.

        Raises:
            ProviderError: On connection failure, non-2xx status, or a body
                that is not a JSON object.
        """
        url = f"{self._base}{path}"
        try:
            response = await self._client.request(
                method,
                url,
                headers=self._headers,
                json=json,
                timeout=_REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"{operation} request failed: {exc.response.status_code} "
                f"{exc.response.reason_phrase}"
            ) from exc
        except httpx.RequestError as exc:
            raise ProviderError(f"{operation} request: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(f"decoding {operation} response: {exc}") from exc
        if not isinstance(body, dict):
            raise ProviderError(f"decoding {operation} response: expected a JSON object")
        return body
