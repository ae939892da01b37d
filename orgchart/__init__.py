"""
Organizational hierarchy editor.

Interactive editing of the sector and position forests with validated
reparenting, buffered edits and a single batch commit.
"""

__version__ = "0.1.0"
