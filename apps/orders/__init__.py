"""Orders and order notifications."""
