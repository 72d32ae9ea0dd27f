"""
Example blueprints for common binary formats. Each module carries its own unittest.TestCase.
"""
from . import ipv4, png, zip
