"""Core engine — per-type binding, validation traversal and defaults."""
