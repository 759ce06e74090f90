from .engine import grade
from .grading import parse_submission
from .grouping import group_by_stimulus
from .aggregate import aggregate
from .predict import predict
from .leveling import assign_level, eligibility, eligibility_from_history
from .errors import MalformedSubmission

__all__ = [
    "grade",
    "parse_submission",
    "group_by_stimulus",
    "aggregate",
    "predict",
    "assign_level",
    "eligibility",
    "eligibility_from_history",
    "MalformedSubmission",
]
