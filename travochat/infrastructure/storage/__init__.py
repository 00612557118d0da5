from .preference_store import InMemoryIdentityStore, JsonFileIdentityStore

__all__ = ['InMemoryIdentityStore', 'JsonFileIdentityStore']
