from .base import RemoteStore
from .postgrest import PostgrestRemoteStore

__all__ = ["PostgrestRemoteStore", "RemoteStore"]
