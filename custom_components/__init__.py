"""Namespace package marker for local testing.

Lets tests import the integration as `custom_components.ts130f`. Home
Assistant itself only loads the `ts130f` directory.
"""
