"""
Formula Pricing Package

Computes a price from designer-configured input variables and an arithmetic
formula. Resolves Inputs → Effective Values → Token Map → Price, with
conditional visibility and min/max clamping.
"""

__version__ = "1.0.0"
