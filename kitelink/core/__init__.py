"""Core Application Layer: the dispatch pipeline and the client facade.

Connects the domain layer with the infrastructure layer through interfaces.
"""
