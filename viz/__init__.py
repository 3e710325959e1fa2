"""
Visualization Package.

This package provides the interactive front ends for nurviz: a Streamlit
viewer that draws a network in role lanes and lets the user explore its
paths, plus renderer payload builders (Cytoscape, sigma.js) that are kept
free of any UI framework so they can be tested on their own.
"""

# Visualization Package
