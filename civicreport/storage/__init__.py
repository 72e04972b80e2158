"""
CivicReport - Object Storage Module
"""

from civicreport.storage.object_store import ObjectStore, UploadTicket, build_file_key, get_object_store

__all__ = [
    "ObjectStore",
    "UploadTicket",
    "build_file_key",
    "get_object_store",
]
