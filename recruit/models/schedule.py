from recruit.extensions import db


class InterviewSchedule(db.Model):
    __tablename__ = "interview_schedules"

    id = db.Column(db.String(64), primary_key=True)
    candidate_id = db.Column(db.String(64), index=True)
    round = db.Column(db.Integer)
    scheduled_at = db.Column(db.String(40))
    interviewers = db.Column(db.String(255))
    link = db.Column(db.String(500))
    location = db.Column(db.String(255))
    created_at = db.Column(db.String(40))
    updated_at = db.Column(db.String(40))
