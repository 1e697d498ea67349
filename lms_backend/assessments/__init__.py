"""
Course Assessments

Attempt lifecycle, grading, effective score resolution and the course
completion cascade.
"""

from lms_backend.assessments.completion import CompletionCascadeEvaluator
from lms_backend.assessments.grading import grade_attempt
from lms_backend.assessments.lifecycle import AttemptLifecycle
from lms_backend.assessments.scoring import resolve_effective_score

__all__ = [
    'AttemptLifecycle',
    'CompletionCascadeEvaluator',
    'grade_attempt',
    'resolve_effective_score',
]
