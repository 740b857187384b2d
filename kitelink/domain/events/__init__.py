"""Domain Event definitions.

Represents significant occurrences in the request pipeline (deferrals,
retries, failures) that observers might react to.
"""
