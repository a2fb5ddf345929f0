from .anon_code import AnonCode
from .exam import ExamSession
from .mark import MarkEntry
from .user import User

__all__ = [
    "AnonCode",
    "ExamSession",
    "MarkEntry",
    "User",
]
