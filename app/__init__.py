"""
Application Package.

Network-facing host adapters for nurviz.
"""
