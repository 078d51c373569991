"""RESP frames, command argument parsing, frame connections, shutdown signalling and an expiring key/value store with pub/sub."""

__version__ = "0.4.1"
__all__ = ["connection", "db", "errors", "frame", "parse", "shutdown"]