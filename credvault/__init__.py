"""
credvault

Command-line credential manager.

Core:
- access_control: validates --access-control expressions
- copier: copies credentials, OIDC tokens and sessions between keyrings
- secrets: keyring interface, namespaces and backends
"""

__version__ = "1.0.0"
