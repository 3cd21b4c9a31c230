"""
Entry point for running the issuance service as a module.

Usage:
    python -m credential_issuance
"""

from credential_issuance.cli import main

if __name__ == "__main__":
    main()
