"""
Bitoro margin protocol: deterministic position valuation and trade simulation.
"""
