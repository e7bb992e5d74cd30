"""
Application Layer

Use cases and services that orchestrate domain objects over the ports.
"""
