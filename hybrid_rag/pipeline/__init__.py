"""
Pipeline modules for the hybrid query engine.

Query understanding:  intent.py, predicates.py
Retrieval:            retrieval.py, fusion.py
Response synthesis:   context_builder.py, response_generator.py

Orchestrated by: orchestrator.py
"""
