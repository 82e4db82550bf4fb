from bikehire import config
from bikehire.store.base import InventoryStore
from bikehire.store.database import DatabaseStore
from bikehire.store.memory import MemoryStore
from bikehire.store.remote import RemoteStore


def create_store(uri: str = config.store_uri) -> InventoryStore:
    """
    Picks the store for a URI.

    :raises ValueError: If no store handles the scheme.
    """
    scheme = uri.split("://", 1)[0]
    if scheme == "memory":
        return MemoryStore()
    elif scheme in ("sqlite", "postgres", "mysql"):
        return DatabaseStore(uri, generate_schemas=scheme == "sqlite")
    elif scheme in ("http", "https"):
        return RemoteStore(uri)
    raise ValueError(f"No store for {uri}.")
