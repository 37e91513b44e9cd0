"""Service layer — rule field dispatch and translation services.

Services may import from domain and infrastructure layers.
They must never import from commands or output.
"""
