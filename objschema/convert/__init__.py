"""Converters between plain objects and XML, JSON and binary payloads."""
