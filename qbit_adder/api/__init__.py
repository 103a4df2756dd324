"""
WebUI API Layer.

This package handles all communication with the qBittorrent WebUI API.
"""

from .auth import SessionManager
from .client import DirectTransport, HttpReply, LiveContext, WebUIClient

__all__ = ["DirectTransport", "HttpReply", "LiveContext", "SessionManager", "WebUIClient"]
