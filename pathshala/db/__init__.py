"""Remote store access: record schemas, the store contract and live bindings."""

from .binding import BindingRegistry, CollectionBinding, Disposable, bind
from .store import Filter, RecordStore, SupabaseStore

__all__ = [
    "BindingRegistry",
    "CollectionBinding",
    "Disposable",
    "Filter",
    "RecordStore",
    "SupabaseStore",
    "bind",
]
