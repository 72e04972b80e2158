"""
CivicReport - Citizen incident reporting

Geotagged reports with phone/OTP login, automatic moderation and an
admin review workflow.
"""

__version__ = "0.1.0"
