"""
Shared constants for the canvas editing gestures.

Distances are in chart data coordinates, the same units the layout produces.
"""

# Distance from the pointer to a node that counts as a connect target
CONNECTION_RADIUS = 110

# Rendered node size, used by chart_builder for the symbol box
NODE_WIDTH = 180
NODE_HEIGHT = 56
