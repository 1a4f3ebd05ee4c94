"""
Memory module - hierarchical node store.

Collections hold nodes addressed by slash-delimited paths; hierarchy is
inferred from path prefixes, never stored.

Backends:
- local: SQLite key-value persistence
- remote: JSON-RPC 2.0 delegate over HTTP
"""
