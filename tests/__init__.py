"""
Tests Package.

This package contains test suites for nurviz, covering the network model
and file codec, the lane layout, the visual graph builder, path
exploration, layout refinement control, the explorer session and the
host adapters (CLI, HTTP backend, renderer payloads).
"""

# Tests Package
