from .client import RemoteStoreClient

__all__ = ["RemoteStoreClient"]
