"""
LMS Assessments Backend

Assessment attempt lifecycle, grading engine and course completion cascade
for the learning-management platform.
"""

__version__ = "0.1.0"
