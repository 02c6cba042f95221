"""
Echo-Audit: deterministic WCAG scoring and versioned accessibility audits.
"""

__version__ = "0.1.0"
