"""Gmail, SMTP, and scheduling services."""
