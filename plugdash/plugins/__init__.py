"""Sample plugins that run against a supplied host's messaging, storage and logging services."""

__all__ = ["basic", "echo", "hello", "storage_check", "receiver", "sender"]