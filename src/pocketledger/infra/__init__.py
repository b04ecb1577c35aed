"""Infrastructure adapters: database wiring and repositories."""
