"""Utilities module"""
from .logger import setup_logger
from .http_client import AsyncHTTPClient

__all__ = ['setup_logger', 'AsyncHTTPClient']
