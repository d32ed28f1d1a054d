from supabase import create_client, Client

from schooldesk.core.config import settings
from schooldesk.store.base import DocumentStore

_supabase_client: Client | None = None
_store: DocumentStore | None = None


def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY,
        )
    return _supabase_client


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        if settings.STORE_BACKEND == "supabase":
            from schooldesk.store.supabase_store import SupabaseStore

            _store = SupabaseStore(get_supabase())
        else:
            from schooldesk.store.memory import MemoryStore

            _store = MemoryStore()
    return _store


def set_store(store: DocumentStore | None) -> None:
    global _store
    _store = store
