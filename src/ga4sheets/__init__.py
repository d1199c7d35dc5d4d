"""
Reconcile Google Analytics 4 Admin API resources (custom dimensions, custom
metrics, calculated metrics, channel groups, data streams, properties and
enhanced measurement settings) from rows of a sheet or CSV file.

Python dataclasses are used for the resource structs and most of the logic is
translating between those and the raw dicts the discovery client deals in.
A ResourceSpec per kind drives one generic Reconciler, so adding a kind is a
matter of describing it rather than writing another loop.
"""

__version__ = "0.3.0"
