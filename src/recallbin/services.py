"""Service wiring shared by the API and the CLI."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .core.auth import IdentityVerifier, StaticTokenVerifier
from .core.chat_service import ChatService
from .core.collection_manager import CollectionManager
from .core.content_fetcher import ContentFetcher
from .core.document_store import DocumentStore
from .core.enrichment import EnrichmentService
from .core.ingestion_service import IngestionService
from .core.item_manager import ItemManager
from .core.quota_tracker import QuotaTracker
from .core.reminder_service import ReminderService
from .core.search_service import SearchService
from .models.config import AppConfig, EnvSettings

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything a request handler needs, built once per process."""

    config: AppConfig
    store: DocumentStore
    verifier: IdentityVerifier
    collections: CollectionManager
    items: ItemManager
    quota: QuotaTracker
    enrichment: EnrichmentService
    ingestion: IngestionService
    search: SearchService
    chat: ChatService
    reminders: ReminderService


async def build_services(
    config: AppConfig,
    data_dir: Path,
    env_settings: Optional[EnvSettings] = None,
    verifier: Optional[IdentityVerifier] = None,
    enrichment: Optional[EnrichmentService] = None,
) -> ServiceContainer:
    """Open the store and construct the service graph on top of it."""
    store = DocumentStore(data_dir)
    await store.initialize()

    collections = CollectionManager(store, default_color=config.default_collection_color)
    items = ItemManager(store, collections)
    quota = QuotaTracker(store, daily_limit=config.daily_quota_limit)
    if enrichment is None:
        fetcher = ContentFetcher(
            timeout=config.fetch_timeout_seconds, max_chars=config.max_extracted_chars
        )
        enrichment = EnrichmentService(config, content_fetcher=fetcher)

    services = ServiceContainer(
        config=config,
        store=store,
        verifier=verifier or StaticTokenVerifier.from_settings(config, env_settings),
        collections=collections,
        items=items,
        quota=quota,
        enrichment=enrichment,
        ingestion=IngestionService(config, items, collections, quota, enrichment),
        search=SearchService(config, items),
        chat=ChatService(config, items, enrichment),
        reminders=ReminderService(store, items),
    )
    logger.info(f"Services initialized with document store at {data_dir}")
    return services
