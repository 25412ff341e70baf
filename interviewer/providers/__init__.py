"""Realtime session transports."""
