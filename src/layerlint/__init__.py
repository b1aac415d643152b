"""Layerlint - layered-architecture conformance analyzer."""

__version__ = "0.1.0"
