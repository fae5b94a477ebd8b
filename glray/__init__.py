"""
Assembles a GLSL path tracing sample function from composable materials,
traceable objects, environments and camera projections.
"""

__version__ = '0.3.0'
