"""
CivicReport - Auth Module
Phone + OTP login and JWT access tokens.
"""

from civicreport.auth.otp import OTPService, generate_otp_code, hash_otp
from civicreport.auth.tokens import TokenData, create_access_token, decode_access_token

__all__ = [
    "OTPService",
    "generate_otp_code",
    "hash_otp",
    "TokenData",
    "create_access_token",
    "decode_access_token",
]
