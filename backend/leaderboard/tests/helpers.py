from datetime import UTC, datetime

# A Wednesday in ISO week 42 of 2026.
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)
