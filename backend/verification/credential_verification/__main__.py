"""
Entry point for running the verification service as a module.

Usage:
    python -m credential_verification
"""

from credential_verification.cli import main

if __name__ == "__main__":
    main()
