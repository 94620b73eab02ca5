"""Connector platform: entities, source, transformer, sink, storage and scheduling."""
