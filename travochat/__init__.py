"""
travochat - client core of an embeddable two-party chat widget.
"""

__version__ = "1.0.0"
