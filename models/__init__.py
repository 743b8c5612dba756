"""Plain data types shared across services."""
