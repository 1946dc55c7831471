"""
Web bridge: serves the webview UI to a plain browser and relays its
messages to the host application over WebSocket.
"""

__version__ = "0.1.0"
