"""
HTTP API for activations and DNS change lists.
"""
