"""
Command line interface for docstore.
"""
