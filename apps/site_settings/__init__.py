"""Store-wide settings singletons."""
