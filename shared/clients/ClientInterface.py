import asyncio
from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles

from shared.errors.sync_errors import Forbidden, GatewayError, NotFound, Unauthorized, UpstreamUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

RETRY_STATUS_CODES = (502, 503, 504)
RETRY_BASE_DELAY = 0.5  # seconds, doubled on every attempt


class ClientInterface(ABC):
    """
    Base class for every HTTP backend client.

    Settings are read from the environment under two prefixes:
    ``<TYPE>_<SETTING>`` for transport options shared by all engines of a type
    (timeout, retries, debug) and ``<TYPE>_<ENGINE>_<SETTING>`` for engine
    specific values such as credentials.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

        type_prefix = self.get_client_type().upper()
        self.timeout = helper_config.get_number_val(f"{type_prefix}_TIMEOUT", default=30.0)
        self.retries = int(helper_config.get_number_val(f"{type_prefix}_RETRIES", default=3))
        self.debug = helper_config.get_bool_val(f"{type_prefix}_DEBUG", default=False)

        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Read every required setting once so a missing one fails at construction time."""
        for entry in self._get_required_config():
            self.get_config_val(raw_key=entry.env_key, default=entry.default, val_type=entry.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ IDENTITY ##################
    def get_client_type(self) -> str:
        """Lowercase client family, e.g. ``cad``."""
        return self._get_client_type().lower()

    def get_engine_name(self) -> str:
        """Lowercase backend name, e.g. ``onshape``."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    def set_debug(self, enabled: bool) -> None:
        self.debug = enabled

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings the engine cannot run without."""
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return "_".join((self.get_client_type(), self.get_engine_name(), raw_key)).upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Read an engine setting, e.g. ``ACCESS_KEY`` resolves to ``CAD_ONSHAPE_ACCESS_KEY``.

        Args:
            raw_key (str): Setting name without the type/engine prefix.
            default (Any): Value used when the variable is unset. ``None`` makes it mandatory.
            val_type (str): One of "string", "number", "bool" or "list".
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        reader = readers.get(val_type)
        if reader is None:
            raise ValueError(f"Cannot read '{raw_key}' for {self.get_client_type()} engine '{self.get_engine_name()}': unknown value type '{val_type}'.")
        return reader(self._get_config_key_name(raw_key), default=default)

    ################ BACKEND ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers that authenticate a request against the backend."""
        pass

    @abstractmethod
    def _get_base_url(self) -> str:
        """Prefix for relative endpoints, e.g. ``https://cad.onshape.com/api/v12``."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the underlying connection pool. Tests pass a mock ``transport``."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport, follow_redirects=True)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        if self._client is None:
            await self.boot()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Cheap authenticated call proving the backend is reachable and the credentials work."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = True,
    ) -> httpx.Response:
        """
        Send one request to the backend, retrying gateway errors and dropped connections.

        Only one body kind is sent: ``content`` wins over ``data``/``files``,
        which win over ``json``. ``endpoint`` may be a path relative to the
        base URL or an absolute URL (thumbnail and blob downloads).

        Raises:
            RuntimeError: If boot() has not been called.
            Unauthorized: On 401.
            Forbidden: On 403.
            NotFound: On 404.
            UpstreamUnavailable: On 5xx or transport failures once retries are used up.
            GatewayError: On any other non-2xx status.
        """
        if self._client is None:
            raise RuntimeError(f"{self.get_engine_name()} client is not booted.")

        url = self._build_url(endpoint)
        request_args = self._request_args(content, data, files, json, params, additional_headers)

        response = await self._send_with_retries(method, url, request_args)

        if self.debug:
            self.logging.debug("HTTP %s %s -> %d (%d bytes)", method, url, response.status_code, len(response.content))
        if raise_on_error and not response.is_success:
            self._raise_for_status(response, url)
        return response

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        path = endpoint.strip().lstrip("/")
        base = self._get_base_url().rstrip("/")
        return f"{base}/{path}" if path else base

    def _request_args(
        self,
        content: RequestContent | None,
        data: RequestData | None,
        files: RequestFiles | None,
        json: dict | None,
        params: QueryParamTypes | None,
        additional_headers: dict | None,
    ) -> dict:
        headers = {**self._get_auth_header(), **(additional_headers or {})}
        args: dict = {"headers": headers, "params": params, "timeout": self.timeout}
        if content is not None:
            args["content"] = content
        elif data is not None or files is not None:
            args.update({k: v for k, v in (("data", data), ("files", files)) if v is not None})
        elif json is not None:
            args["json"] = json
        return args

    async def _send_with_retries(self, method: str, url: str, request_args: dict) -> httpx.Response:
        attempt = 0
        while True:
            if self.debug:
                self.logging.debug("HTTP %s %s params=%s", method, url, request_args.get("params"))
            try:
                response = await self._client.request(method, url, **request_args)
            except httpx.TransportError as exc:
                if attempt >= self.retries:
                    raise UpstreamUnavailable(f"Request to {url} failed: {exc}", url=url) from exc
                attempt += 1
                await self._wait_before_retry(attempt, f"network error ({type(exc).__name__})")
                continue

            if response.status_code not in RETRY_STATUS_CODES or attempt >= self.retries:
                return response
            attempt += 1
            await self._wait_before_retry(attempt, f"status {response.status_code}")

    async def _wait_before_retry(self, attempt: int, reason: str) -> None:
        delay = RETRY_BASE_DELAY * (2 ** (attempt - 1))
        self.logging.warning("Retry attempt %d/%d after %s, waiting %.1fs", attempt, self.retries, reason, delay)
        await asyncio.sleep(delay)

    def _raise_for_status(self, response: httpx.Response, url: str) -> None:
        status = response.status_code
        message = f"Request to {url} failed with status {status}"
        if response.content:
            message += f": {response.text[:300]}"
        self.logging.debug(message)
        if status == 401:
            raise Unauthorized(message, status_code=status, url=url)
        if status == 403:
            raise Forbidden(message, status_code=status, url=url)
        if status == 404:
            raise NotFound(message, status_code=status, url=url)
        if status >= 500:
            raise UpstreamUnavailable(message, status_code=status, url=url)
        raise GatewayError(message, status_code=status, url=url)
