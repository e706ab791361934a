"""
Chainwatch - NSE option chain harvesting service
"""

__version__ = "1.0.0"
