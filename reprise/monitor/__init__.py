"""Terminal presentation of monitoring events (Rich and JSON)."""
