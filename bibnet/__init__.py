# bibnet/__init__.py

"""
In-memory bibliographic property graph: entity/relationship storage,
relationship inference, projection and graph analytics.
"""

__version__ = "0.1.0"
