"""
Credential Verification - confirms a subject holds an issued credential.

Provides REST endpoints for:
- Verifying a subject's credential against the issuance service
- Health checks
"""

__version__ = "0.1.0"
