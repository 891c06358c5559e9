"""Limiter capability adapters.

The decision pipeline only knows the abstract ``limit(key)`` capability;
bindings resolve a configured name to an in-process or remote limiter.
"""
