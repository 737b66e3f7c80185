from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientRequestError(Exception):
    """A backend answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int, detail: str):
        super().__init__(f"Request to {url} failed with status {status_code}: {detail}")
        self.url = url
        self.status_code = status_code
        self.detail = detail


class ClientInterface(ABC):
    """Async httpx client shared by every backend family.

    Subclasses name their family (``_get_client_type``) and engine
    (``_get_engine_name``). Configuration keys are then resolved as
    ``<TYPE>_<ENGINE>_<KEY>``, e.g. ``CONTENT_TLDW_BASE_URL``, and the
    request timeout as ``<TYPE>_TIMEOUT``.
    """

    _CONFIG_READERS = {
        "string": "get_string_val",
        "number": "get_number_val",
        "bool": "get_bool_val",
        "list": "get_list_val",
    }

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Read every required key once so a missing one fails at construction.

        Raises:
            ValueError: If a required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    def is_booted(self) -> bool:
        return self._client is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Configuration keys (without the type/engine prefix) this engine reads."""
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read an engine scoped configuration value.

        Args:
            raw_key (str): Key without prefix, e.g. "BASE_URL".
            default (Any): Returned when the variable is unset. None makes it required.
            val_type (str): One of "string", "number", "bool", "list".
        """
        reader = self._CONFIG_READERS.get(val_type)
        if reader is None:
            raise ValueError(
                f"Unsupported config value type '{val_type}' for key '{raw_key}' of "
                f"{self.get_client_type()} client '{self.get_engine_name()}'."
            )
        return getattr(self._helper_config, reader)(self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers that authenticate against the backend. Empty when no key is configured."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Create the underlying httpx.AsyncClient. Tests pass an httpx.MockTransport."""
        options: dict[str, Any] = {"timeout": self.timeout}
        if transport is not None:
            options["transport"] = transport
        self._client = httpx.AsyncClient(**options)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

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
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send a request to ``<base url><endpoint>``.

        Exactly one body kind is sent: raw ``content``, a ``json`` document, or
        form ``data`` together with optional multipart ``files``. Content-Type
        is left to httpx.

        Raises:
            RuntimeError: If boot() was not called.
            ClientRequestError: If raise_on_error is set and the status is not 2xx.
        """
        if not self.is_booted():
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        path = endpoint.strip().lstrip("/")
        url = self._get_base_url().rstrip("/") + (f"/{path}" if path else "")
        headers = {**self._get_auth_header(), **(additional_headers or {})}

        body: dict[str, Any] = {}
        if content is not None:
            body["content"] = content
        elif json is not None:
            body["json"] = json
        else:
            if data is not None:
                body["data"] = data
            if files is not None:
                body["files"] = files

        response = await self._client.request(method, url, headers=headers, params=params, timeout=self.timeout, **body)

        if raise_on_error and not response.is_success:
            self.logging.error("%s %s failed with status %d: %s", method, url, response.status_code, response.text[:500])
            raise ClientRequestError(url, response.status_code, self._extract_error_detail(response))
        return response

    def _extract_error_detail(self, response: httpx.Response) -> str:
        """Best effort human readable message of a failed response."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("detail", "error", "message"):
                if body.get(key):
                    return str(body[key])
        return response.text[:200] or response.reason_phrase
