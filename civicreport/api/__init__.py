"""
CivicReport - REST API
"""
