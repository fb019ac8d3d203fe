"""
Hybrid RAG backend: rule-based intent extraction, vector + relational
search fusion, and grounded answer generation.
"""

__version__ = "1.0.0"
