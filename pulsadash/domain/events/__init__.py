"""Domain Event definitions.

Represents significant occurrences in the request layer (endpoint resolved,
retry scheduled, request aborted) that other parts of the system might react to.
"""
