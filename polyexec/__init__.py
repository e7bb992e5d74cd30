"""
polyexec

Run code snippets in persistent interpreter sessions or in disposable,
resource-limited containers, and get back a single transcript.
"""

__version__ = "0.3.0"
