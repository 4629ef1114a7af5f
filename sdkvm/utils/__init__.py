"""Utility helpers for sdkvm."""
