"""
Backend package for otp-vault using Flask.
Exposes the vault_core codecs and the credential store over a JSON API.
"""

from .app import create_app

__all__ = ["create_app"]
