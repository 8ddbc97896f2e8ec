"""Client-side allocator for invoice and lorry receipt numbers.

The allocator keeps a local cache of the backend's numbering configurations
and hands out sequential document numbers. The backend stays authoritative:
the cached counter only moves after the backend has accepted the new value.
"""

import asyncio
from types import TracebackType
from typing import Any, Self

import httpx
import structlog

from lorrybook.client.config import ClientConfig
from lorrybook.client.errors import ConfigNotFoundError, LoadError, NumberingClientError, SaveError, UpdateError
from lorrybook.core.modules.numbering.models import (
    DEFAULT_NUMBERING,
    DocumentType,
    NumberingConfig,
    NumberingValidationResult,
    default_config,
    format_document_number,
)
from lorrybook.errors import ValidationError
from lorrybook.utils import now

logger = structlog.get_logger(__name__)

DUPLICATE_NUMBER_MESSAGE = "This number is already in use. Please enter a different number."
DUPLICATE_CHECK_FAILED_MESSAGE = "Could not verify that this number is unused. Please try again."


def parse_manual_number(raw: str, prefix: str) -> int:
    """Turn a user-typed document number such as "LR5012" into its integer part.

    The prefix is matched case-insensitively and may be omitted.

    Raises:
        ValidationError: If what remains is not a positive integer
    """
    text = raw.strip()
    if prefix and text.upper().startswith(prefix.upper()):
        text = text[len(prefix) :].strip()

    if not text.isascii() or not text.isdigit() or int(text) < 1:
        raise ValidationError("Please enter a valid number")
    return int(text)


def _error_message(response: httpx.Response) -> str | None:
    """Extract the backend's error message, if the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


class NumberingAllocator:
    """Allocates sequential document numbers against the numbering API.

    Build one with ``await NumberingAllocator.create(config)``, or construct it
    directly and let the first operation initialize it. Pass ``http`` to share
    an existing ``httpx.AsyncClient``; otherwise the allocator owns its client
    and closes it in ``aclose()``.
    """

    def __init__(self, config: ClientConfig, http: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=config.timeout)
        self._configs: dict[DocumentType, NumberingConfig] = {}
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._allocation_lock = asyncio.Lock()

    @classmethod
    async def create(cls, config: ClientConfig, http: httpx.AsyncClient | None = None) -> Self:
        """Construct an allocator and bring it to the ready state."""
        allocator = cls(config, http)
        await allocator.initialize()
        return allocator

    async def __aenter__(self) -> Self:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _url(self, path: str) -> str:
        return f"{self._config.api_base_url.rstrip('/')}/{path}"

    def _get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.api_token}"}

    async def _post(self, path: str, payload: dict[str, Any] | None = None) -> httpx.Response:
        response = await self._http.post(self._url(path), headers=self._get_headers(), json=payload)
        response.raise_for_status()
        return response

    async def initialize(self) -> None:
        """Load configurations once; fall back to defaults when the backend is unavailable.

        Never raises. Concurrent callers wait for the same load.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return
            try:
                await self.load_configs()
            except LoadError as e:
                logger.warning("numbering_load_failed_using_defaults", error=str(e), status_code=e.status_code)
                self._use_default_configs()
            self._initialized = True

    async def load_configs(self) -> None:
        """Replace the cache with the backend's configurations.

        Raises:
            LoadError: If the request fails or the response is malformed
        """
        try:
            response = await self._http.get(self._url("numbering/configs"), headers=self._get_headers())
            response.raise_for_status()
            configs = [NumberingConfig.model_validate(item) for item in response.json()]
        except httpx.HTTPStatusError as e:
            raise LoadError(
                f"Failed to load numbering configurations: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise LoadError(f"Failed to load numbering configurations: {e}") from e
        except (ValueError, TypeError) as e:
            raise LoadError("Malformed numbering configuration response") from e

        self._configs = {config.type: config for config in configs}
        logger.debug("numbering_configs_loaded", types=sorted(self._configs))

    def _use_default_configs(self) -> None:
        self._configs = {document_type: default_config(document_type) for document_type in DocumentType}

    @staticmethod
    def _coerce_type(document_type: DocumentType | str) -> DocumentType | None:
        try:
            return DocumentType(document_type)
        except ValueError:
            return None

    def _require_type(self, document_type: DocumentType | str) -> DocumentType:
        coerced = self._coerce_type(document_type)
        if coerced is None:
            raise ConfigNotFoundError(f"No numbering configuration found for {document_type}")
        return coerced

    async def get_next_number(self, document_type: DocumentType | str) -> int:
        """Allocate the next number of a type and return it.

        Calls are serialized within this allocator, so awaited or concurrent
        calls from one process never receive the same number. Cancelling the
        caller does not cancel the allocation: the request and the cache
        update still complete, so the next call continues after it.

        Raises:
            ConfigNotFoundError: If no configuration exists for the type
            UpdateError: If the backend rejects the new counter value
        """
        await self.initialize()
        document_type = self._require_type(document_type)
        task = asyncio.ensure_future(self._advance(document_type))
        return await asyncio.shield(task)

    async def _advance(self, document_type: DocumentType) -> int:
        async with self._allocation_lock:
            config = self._configs.get(document_type)
            if config is None:
                raise ConfigNotFoundError(f"No numbering configuration found for {document_type}")

            number = config.current_number
            try:
                await self._post("numbering/update-current", {"type": document_type, "current_number": number + 1})
            except httpx.HTTPStatusError as e:
                logger.error(
                    "numbering_update_failed",
                    type=document_type,
                    status_code=e.response.status_code,
                    response=e.response.text,
                )
                if e.response.status_code == 400:
                    # Counter moved on the backend; resync so the next call starts from it
                    await self._resync_after_rejection()
                raise UpdateError("Failed to generate next number", status_code=e.response.status_code) from e
            except (httpx.RequestError, httpx.InvalidURL) as e:
                logger.error("numbering_update_request_failed", type=document_type, error=str(e))
                raise UpdateError("Failed to generate next number") from e

            self._configs[document_type] = config.model_copy(update={"current_number": number + 1, "updated_at": now()})

        logger.debug("numbering_allocated", type=document_type, number=number)
        return number

    async def _resync_after_rejection(self) -> None:
        try:
            await self.load_configs()
        except LoadError as e:
            logger.warning("numbering_resync_failed", error=str(e), status_code=e.status_code)

    async def allocate_atomic(self, document_type: DocumentType | str) -> int:
        """Allocate through the backend's atomic increment endpoint.

        Unlike get_next_number this stays unique across processes, since the
        backend reads and advances the counter in one operation.
        """
        await self.initialize()
        document_type = self._require_type(document_type)

        async with self._allocation_lock:
            try:
                response = await self._post(f"numbering/next/{document_type}")
                body = response.json()
                number = int(body["number"])
                current_number = int(body["current_number"])
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise ConfigNotFoundError(
                        f"No numbering configuration found for {document_type}", status_code=404
                    ) from e
                raise UpdateError("Failed to generate next number", status_code=e.response.status_code) from e
            except (httpx.RequestError, httpx.InvalidURL) as e:
                raise UpdateError("Failed to generate next number") from e
            except (ValueError, KeyError, TypeError) as e:
                raise UpdateError("Malformed allocation response") from e

            config = self._configs.get(document_type)
            if config is not None:
                self._configs[document_type] = config.model_copy(
                    update={"current_number": current_number, "updated_at": now()}
                )

        return number

    async def check_duplicate_number(self, document_type: DocumentType | str, number: int) -> bool:
        """Ask the backend whether a stored document already uses number.

        Raises:
            NumberingClientError: If the check could not be completed
        """
        document_type = self._require_type(document_type)
        try:
            response = await self._post("numbering/check-duplicate", {"type": document_type, "number": number})
            return bool(response.json()["is_duplicate"])
        except httpx.HTTPStatusError as e:
            raise NumberingClientError(
                f"Duplicate check failed: HTTP {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise NumberingClientError(f"Duplicate check failed: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise NumberingClientError("Malformed duplicate check response") from e

    async def validate_manual_number(self, document_type: DocumentType | str, number: int) -> NumberingValidationResult:
        """Check a user-supplied number before the document is saved.

        The number is not reserved. If the duplicate check cannot be completed
        the result follows ClientConfig.duplicate_check_fail_open.
        """
        await self.initialize()
        document_type = self._coerce_type(document_type)

        if document_type is None or document_type not in self._configs:
            return NumberingValidationResult(valid=False, message="No numbering configuration found")
        if number < 1:
            return NumberingValidationResult(valid=False, message="Please enter a valid number")

        try:
            is_duplicate = await self.check_duplicate_number(document_type, number)
        except NumberingClientError as e:
            logger.warning(
                "numbering_duplicate_check_failed",
                type=document_type,
                number=number,
                error=str(e),
                fail_open=self._config.duplicate_check_fail_open,
            )
            if self._config.duplicate_check_fail_open:
                return NumberingValidationResult(valid=True)
            return NumberingValidationResult(valid=False, message=DUPLICATE_CHECK_FAILED_MESSAGE)

        if is_duplicate:
            return NumberingValidationResult(valid=False, message=DUPLICATE_NUMBER_MESSAGE)
        return NumberingValidationResult(valid=True)

    async def save_config(
        self, document_type: DocumentType | str, starting_number: int, prefix: str = ""
    ) -> NumberingConfig:
        """Persist a configuration and cache the backend's copy verbatim.

        Raises:
            SaveError: If the backend rejects the configuration
        """
        document_type = self._coerce_type(document_type)
        if document_type is None:
            raise SaveError("Unknown document type")
        payload = {"type": document_type, "starting_number": starting_number, "prefix": prefix}
        try:
            response = await self._post("numbering/configs", payload)
            saved = NumberingConfig.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response) or "Failed to save configuration"
            logger.error(
                "numbering_save_failed", type=document_type, status_code=e.response.status_code, message=message
            )
            raise SaveError(message, status_code=e.response.status_code) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.error("numbering_save_request_failed", type=document_type, error=str(e))
            raise SaveError(f"Failed to save configuration: {e}") from e
        except (ValueError, TypeError) as e:
            raise SaveError("Malformed configuration response") from e

        self._configs[document_type] = saved
        logger.info(
            "numbering_config_saved", type=document_type, starting_number=saved.starting_number, prefix=saved.prefix
        )
        return saved

    def get_config(self, document_type: DocumentType | str) -> NumberingConfig | None:
        coerced = self._coerce_type(document_type)
        if coerced is None:
            return None
        return self._configs.get(coerced)

    def get_all_configs(self) -> list[NumberingConfig]:
        return list(self._configs.values())

    def format_number(self, document_type: DocumentType | str, number: int) -> str:
        """Render a number for display, e.g. INV1007."""
        config = self.get_config(document_type)
        return format_document_number(config.prefix if config else "", number)

    def parse_manual_number(self, document_type: DocumentType | str, raw: str) -> int:
        """Parse user input using the cached prefix, or the type's default prefix.

        An unknown type is parsed without a prefix.
        """
        config = self.get_config(document_type)
        if config is not None:
            prefix = config.prefix
        else:
            coerced = self._coerce_type(document_type)
            prefix = DEFAULT_NUMBERING[coerced][1] if coerced else ""
        return parse_manual_number(raw, prefix)
