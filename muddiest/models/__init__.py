from .course import Course
from .class_session import ClassSession
from .submission import Submission, DIFFICULTY_CHOICES
from .rate_limit import SubmissionRateLimit
from .user_story import UserStory, UserStoryUpvote, STATUS_CHOICES

__all__ = [
    "Course",
    "ClassSession",
    "Submission",
    "SubmissionRateLimit",
    "UserStory",
    "UserStoryUpvote",
    "DIFFICULTY_CHOICES",
    "STATUS_CHOICES",
]
