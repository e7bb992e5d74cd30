"""
Infrastructure Layer

Kernels, the Docker adapter, configuration, logging and wiring.
"""
