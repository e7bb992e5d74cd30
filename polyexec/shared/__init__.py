"""
Shared kernel: error taxonomy and cancellation primitives used by every layer.
"""
