"""Command implementations for the objcstyle CLI."""
