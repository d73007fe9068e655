"""Domain Layer: models, interfaces (ports), events and errors.

Contains no I/O. Infrastructure adapters implement the interfaces defined here.
"""
