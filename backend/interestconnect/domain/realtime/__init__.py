"""Realtime presence and messaging hub."""
