"""
timetabler - weekly school timetable core with conflict detection and grid layout.
"""

__version__ = "0.1.0"
