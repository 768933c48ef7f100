"""
Contract workflow client.

Drives text extraction, AI analysis, risk analysis and compliance checks
against the contract service and tracks their progress per contract.
"""

__version__ = "0.1.0"
