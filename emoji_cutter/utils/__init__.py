"""Utility helpers."""

from .env import load_api_key, load_base_url, setup_logging

__all__ = ['setup_logging', 'load_api_key', 'load_base_url']
