from .user import User
from .job import Job
from .candidate import Candidate
from .interview import Interview
from .schedule import InterviewSchedule
from .resume_file import ResumeFile
from .event import Event
from .offer import Offer

__all__ = [
    "User",
    "Job",
    "Candidate",
    "Interview",
    "InterviewSchedule",
    "ResumeFile",
    "Event",
    "Offer",
]
