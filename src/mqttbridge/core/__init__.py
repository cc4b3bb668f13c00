"""Core: errors and constants shared by gateway and adapters."""
