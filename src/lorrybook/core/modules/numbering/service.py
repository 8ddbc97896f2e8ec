from typing import Any

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from lorrybook.core.core import Service
from lorrybook.core.modules.numbering.models import (
    DOCUMENT_NUMBER_FIELDS,
    DocumentType,
    NumberingConfig,
    default_config,
)
from lorrybook.errors import NotFoundError, ValidationError
from lorrybook.utils import now

logger = structlog.get_logger(__name__)


class NumberingService(Service):
    """Authoritative store of numbering configurations with in-memory cache."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("numbering_configs")
        self._configs: dict[DocumentType, NumberingConfig] = {}

    async def on_start(self) -> None:
        """Create indexes, load cache, and bootstrap missing defaults."""
        await self._collection.create_index([("type", 1)], unique=True)
        await self.update_all_configs_cache()
        await self.ensure_default_configs()
        logger.debug("numbering_service_started", config_count=len(self._configs))

    async def update_all_configs_cache(self) -> None:
        """Reload all configurations from the database."""
        configs = await NumberingConfig.list_cursor(self._collection.find())
        self._configs = {config.type: config for config in configs}

    async def update_config_cache(self, document_type: DocumentType) -> NumberingConfig:
        """Reload one configuration from the database."""
        doc = await self._collection.find_one({"type": document_type})
        if doc is None:
            raise NotFoundError(f"Numbering configuration for '{document_type}' not found")
        self._configs[document_type] = NumberingConfig.model_validate(doc)
        return self._configs[document_type]

    async def ensure_default_configs(self) -> None:
        """Insert the default configuration for every type that has none."""
        for document_type in DocumentType:
            if document_type in self._configs:
                continue
            await self._collection.update_one(
                {"type": document_type},
                {"$setOnInsert": default_config(document_type).to_mongo()},
                upsert=True,
            )
            await self.update_config_cache(document_type)
            logger.info("numbering_default_config_created", type=document_type)

    def get_all_configs(self) -> list[NumberingConfig]:
        return list(self._configs.values())

    def get_config(self, document_type: DocumentType) -> NumberingConfig:
        if document_type not in self._configs:
            raise NotFoundError(f"Numbering configuration for '{document_type}' not found")
        return self._configs[document_type]

    async def save_config(self, document_type: DocumentType, starting_number: int, prefix: str) -> NumberingConfig:
        """Create or replace a configuration; the counter restarts at starting_number."""
        if starting_number < 1:
            raise ValidationError("Starting number must be at least 1")

        timestamp = now()
        existing = self._configs.get(document_type)
        fresh = NumberingConfig(
            type=document_type,
            starting_number=starting_number,
            current_number=starting_number,
            prefix=prefix,
            created_at=existing.created_at if existing else timestamp,
            updated_at=timestamp,
        )
        fields = fresh.to_mongo()
        doc_id = fields.pop("_id")
        await self._collection.update_one(
            {"type": document_type},
            {"$set": fields, "$setOnInsert": {"_id": doc_id}},
            upsert=True,
        )
        logger.info("numbering_config_saved", type=document_type, starting_number=starting_number, prefix=prefix)
        return await self.update_config_cache(document_type)

    async def update_current_number(self, document_type: DocumentType, current_number: int) -> NumberingConfig:
        """Advance the counter of a type by one, to current_number.

        The update only applies while the stored counter is current_number - 1,
        so a stale or repeated request can never move the counter backward.
        """
        config = self.get_config(document_type)
        if current_number != config.current_number + 1:
            raise ValidationError(
                f"Current number must advance from {config.current_number} to {config.current_number + 1}"
            )

        result = await self._collection.update_one(
            {"type": document_type, "current_number": current_number - 1},
            {"$set": {"current_number": current_number, "updated_at": now()}},
        )
        if result.matched_count == 0:
            config = await self.update_config_cache(document_type)
            logger.warning(
                "numbering_update_conflict",
                type=document_type,
                requested=current_number,
                stored=config.current_number,
            )
            raise ValidationError(f"Current number has moved to {config.current_number}")
        return await self.update_config_cache(document_type)

    async def check_duplicate(self, document_type: DocumentType, number: int) -> bool:
        """Check whether a stored document of this type already uses number."""
        collection_name, field = DOCUMENT_NUMBER_FIELDS[document_type]
        doc = await self.database.get_collection(collection_name).find_one({field: number}, projection={"_id": 1})
        return doc is not None

    async def allocate_next(self, document_type: DocumentType) -> tuple[int, NumberingConfig]:
        """Atomically hand out current_number and advance the counter by one.

        Returns the allocated number together with the updated configuration.
        """
        doc = await self._collection.find_one_and_update(
            {"type": document_type},
            {"$inc": {"current_number": 1}, "$set": {"updated_at": now()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundError(f"Numbering configuration for '{document_type}' not found")

        config = NumberingConfig.model_validate(doc)
        self._configs[document_type] = config
        number = config.current_number - 1
        logger.debug("numbering_allocated", type=document_type, number=number)
        return number, config
