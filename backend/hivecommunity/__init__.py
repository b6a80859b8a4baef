"""Hive Community backend: hive and member applications, events and volunteering"""

__version__ = "1.0.0"
