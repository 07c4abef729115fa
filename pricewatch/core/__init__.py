"""Core building blocks shared across the crawler: errors and logging."""
