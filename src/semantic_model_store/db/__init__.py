"""
semantic_model_store.db

SQLAlchemy schema and session helpers backing the DocumentStore persistence strategy.
"""
