"""
OpenSCAD integration

Wraps the OpenSCAD command line used to turn a customizer parameter set into a
printable swatch model.
"""

from .runner import OpenScadRunner, RenderError, default_openscad_path

__all__ = [
    'OpenScadRunner',
    'RenderError',
    'default_openscad_path',
]
