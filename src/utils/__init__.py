"""Serialization and EVM encoding helpers."""
