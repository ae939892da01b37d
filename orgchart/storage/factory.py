"""
Store Factory.

Creates the appropriate entity store from the resolved settings.
"""

import logging
from typing import TYPE_CHECKING

from orgchart.storage.file_store import FileEntityStore
from orgchart.storage.http_store import HttpEntityStore

if TYPE_CHECKING:
    from orgchart.config import Settings
    from orgchart.storage.protocol import EntityStore

logger = logging.getLogger(__name__)

# Default store type
DEFAULT_STORE = "file"


def create_store(settings: "Settings") -> "EntityStore":
    """
    Create an entity store instance.

    Args:
        settings: Resolved application settings

    Returns:
        HttpEntityStore when ``settings.store == "http"``, else FileEntityStore
    """
    store_type = (settings.store or DEFAULT_STORE).lower()

    if store_type == "http":
        logger.info(f"Using HTTP entity store at {settings.api_base_url}")
        return HttpEntityStore(
            base_url=settings.api_base_url,
            token=settings.api_token,
            timeout=settings.request_timeout,
        )

    if store_type != "file":
        logger.warning(f"Unknown store type '{store_type}', falling back to file store")

    logger.info(f"Using file entity store in {settings.data_dir}")
    store = FileEntityStore(settings.data_dir)
    if settings.seed_demo:
        store.seed_demo_data()
    return store
