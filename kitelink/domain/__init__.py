"""Domain Layer: value objects, interfaces (ports) and events.

Nothing in here talks to the network; concrete adapters live in the
infrastructure layer.
"""
