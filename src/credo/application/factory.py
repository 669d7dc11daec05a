"""
State Factory
Centralizes wiring of the store, catalog and AppState from configuration.
"""

import logging

from credo.application.catalog import Catalog, load_catalog
from credo.application.config import AppConfig
from credo.application.state import AppState
from credo.domain.ports import KeyValueStore
from credo.infrastructure.store import JsonFileStore

logger = logging.getLogger(__name__)


def get_store(config: AppConfig) -> KeyValueStore:
    """Returns the file-backed store configured for this run."""
    logger.debug(f"Store: {config.data_file} (namespace {config.namespace!r})")
    return JsonFileStore(config.data_file, namespace=config.namespace)


def get_catalog(config: AppConfig) -> Catalog:
    """Returns the configured catalog, or the bundled one."""
    return load_catalog(config.catalog_path)


def build_app_state(config: AppConfig) -> AppState:
    return AppState(get_store(config), get_catalog(config))
