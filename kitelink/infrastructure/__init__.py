"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the pipeline to the outside world (HTTP libraries, hashing,
configuration files, logging, the console) by implementing the interfaces
defined in the domain layer.
"""
