"""Batako - record keeping for a small block-manufacturing operation.

Stock purchases, production runs, sales transactions and weekly pay,
with time-windowed reporting on top of a sqlite store.
"""

__version__ = "0.1.0"
