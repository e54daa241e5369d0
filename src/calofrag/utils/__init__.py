"""Utility functions and tools used across the calofrag package.

- `logger`: package logger configuration
- `errors`: runtime exception types
- `factory`: build classes from configuration dictionaries
- `stopwatch`: wall/CPU time profiling of the algorithms
- `recluster`: track-cluster energy compatibility
"""
