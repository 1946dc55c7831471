"""sdk - Shared support modules for the web bridge

Contains reusable modules for:
    - logging: Hierarchical structured logging with host line sinks
    - transport: Python client for the bridge WebSocket protocol
"""

__version__ = "1.0-beta"
__versionInfo__ = (1, 0, 0, "beta")
__changelog__ = {
    "1.0-beta": "Initial beta release with logging and bridge client"
}
