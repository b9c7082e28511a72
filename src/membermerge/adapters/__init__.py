"""Adapters connecting the merge engine to storage and operator input."""
