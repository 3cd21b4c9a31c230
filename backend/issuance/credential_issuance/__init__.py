"""
Credential Issuance - records one credential per subject.

Provides REST endpoints for:
- Issuing credentials (idempotent per subject)
- Looking up a subject's credential
- Listing issued credentials
- Health checks
"""

__version__ = "0.1.0"
