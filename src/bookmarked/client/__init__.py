"""Client module - local state, backend clients and the sync engine."""
