"""
flagsync — keeps a single "Flag" custom field defined, attached to every
project of a project-management backend, and toggleable per project.
"""

__version__ = "1.0.0"
