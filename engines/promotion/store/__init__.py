"""
Promotion Store - Django persistence for the promotion engine.
"""
