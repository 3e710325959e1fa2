"""
HTTP Backend Package.

FastAPI adapter exposing the explorer session commands over HTTP and
streaming visual graph changes over a WebSocket.
"""
