"""Fixed vocabularies shared by the store, the pipeline and the templates."""

PENDING_SCREENING = "Pending Screening"
RESUME_SCREENING = "Resume Screening"
AWAITING_OFFER = "Awaiting Offer"
OFFER_SENT = "Offer Sent"
HIRED = "Hired"
REJECTED = "Rejected"

INTERVIEW_ROUNDS = [1, 2, 3, 4, 5]
FINAL_ROUND = INTERVIEW_ROUNDS[-1]


def awaiting_round(n):
    return f"Awaiting Round {n}"


def round_passed(n):
    return f"Round {n} Passed"


# ordered from first contact to the end of the process
PIPELINE_STAGES = (
    [PENDING_SCREENING, RESUME_SCREENING]
    + [stage for n in INTERVIEW_ROUNDS for stage in (awaiting_round(n), round_passed(n))]
    + [AWAITING_OFFER, OFFER_SENT, HIRED, REJECTED]
)
STAGE_SET = frozenset(PIPELINE_STAGES)

STAGE_COLORS = {
    PENDING_SCREENING: "gray",
    RESUME_SCREENING: "gray",
    AWAITING_OFFER: "orange",
    OFFER_SENT: "blue",
    HIRED: "green",
    REJECTED: "red",
}

INTERVIEW_RATINGS = ["S", "A", "B+", "B", "B-", "C"]
RATING_SCORES = {"S": 5, "A": 4, "B+": 3.5, "B": 3, "B-": 2, "C": 1}
PASS_THRESHOLD = 3.5
LOW_RATINGS = ("B-", "C")

REVIEW_DIMENSIONS = [
    {"key": "tech", "name": "Technical skill", "desc": "Depth of knowledge, coding, system design"},
    {"key": "comm", "name": "Communication", "desc": "Clarity, listening, teamwork"},
    {"key": "logic", "name": "Reasoning", "desc": "Problem analysis and solution design"},
    {"key": "learn", "name": "Learning", "desc": "Picking up new domains quickly"},
    {"key": "culture", "name": "Culture fit", "desc": "Values, attitude, team fit"},
]
DIMENSION_KEYS = [d["key"] for d in REVIEW_DIMENSIONS]

NEXT_ACTIONS = [
    "To contact",
    "Book round 1",
    "Awaiting feedback",
    "Schedule next round",
    "Book round 2",
    "Book round 3",
    "Negotiate salary",
    "Prepare offer",
    "Send offer",
    "Awaiting start",
    "Closed",
    "Other",
]
DEFAULT_NEXT_ACTION = NEXT_ACTIONS[0]
CLOSED_ACTION = "Closed"

JOB_STATES = ["open", "paused", "closed"]
JOB_CATEGORIES = [
    "Engineering", "Product", "Design", "Operations", "Marketing",
    "Sales", "HR", "Finance", "Admin", "Other",
]

OFFER_PENDING = "Pending"
OFFER_ACCEPTED = "Accepted"
OFFER_STATUSES = [OFFER_PENDING, "Sent", OFFER_ACCEPTED, "Declined", "Withdrawn"]
OFFER_COLORS = {"Pending": "gray", "Sent": "purple", "Accepted": "green", "Declined": "red", "Withdrawn": "red"}

DEFAULT_SOURCES = ["Website", "Referral", "Job Board", "Headhunter", "Feishu Form", "Manual Entry"]
DEFAULT_TAGS = ["High Potential", "Urgent", "On Hold", "Excellent", "Referral Priority", "Declined Other Offer"]
TAG_COLORS = {
    "High Potential": "green",
    "Urgent": "red",
    "On Hold": "gray",
    "Excellent": "purple",
    "Referral Priority": "purple",
    "Declined Other Offer": "red",
}

ROLE_ADMIN = "admin"
ROLE_INTERVIEWER = "interviewer"

SYSTEM_ACTOR = "System"
NO_SYNC = "(no sync)"


def stage_color(stage):
    return STAGE_COLORS.get(stage, "purple" if stage in STAGE_SET else "gray")
