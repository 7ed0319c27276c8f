"""
Core margin algorithms
"""
