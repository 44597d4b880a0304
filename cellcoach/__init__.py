"""
cellcoach - Incremental Cell Coach

Runs the code cells of a stage-based programming course one at a time,
grades each cell's output and explains what went wrong when it fails.
"""

__version__ = "0.1.0"
