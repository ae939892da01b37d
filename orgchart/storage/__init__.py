"""
Entity store abstraction for the org chart editor.

Supports two stores:
- HttpEntityStore: the admin console's REST API
- FileEntityStore: local JSON files (offline use, demos, tests)
"""

from orgchart.storage.protocol import EntityStore, EntityStoreError
from orgchart.storage.file_store import FileEntityStore
from orgchart.storage.http_store import HttpEntityStore
from orgchart.storage.factory import create_store

__all__ = [
    'EntityStore',
    'EntityStoreError',
    'FileEntityStore',
    'HttpEntityStore',
    'create_store',
]
