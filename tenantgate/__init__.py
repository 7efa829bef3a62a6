"""
TenantGate: multi-tenant authorization guards and credential redemption.
"""

__version__ = "1.0.0"
