"""Core graph engines and storage for Memory Graph."""
