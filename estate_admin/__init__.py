"""
Estate Admin

Operator console for the estate management backend: water supply billing,
water well and toilet collections, banking, property rentals and
construction spending.
"""

__version__ = "0.1.0"
