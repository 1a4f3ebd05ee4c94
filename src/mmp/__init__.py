"""
MMP - Model-Memory-Protocol server.

Package structure:
- core: Configuration, logging, error taxonomy
- memory: Hierarchical node store (local SQLite or remote JSON-RPC delegate)
- service: Default-collection resolution and backend selection
- server: MCP tool adapter
"""

__version__ = "1.0.0"
