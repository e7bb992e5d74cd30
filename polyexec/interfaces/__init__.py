"""
Interfaces Layer

Driving adapters: the HTTP API and the command line.
"""
