from recruit.extensions import db


class Interview(db.Model):
    """One interviewer's review of one round."""

    __tablename__ = "interviews"

    id = db.Column(db.String(64), primary_key=True)
    candidate_id = db.Column(db.String(64), index=True)
    round = db.Column(db.Integer)
    status = db.Column(db.String(50))
    rating = db.Column(db.String(5))
    interviewer = db.Column(db.String(255))
    dimensions = db.Column(db.JSON)
    pros = db.Column(db.Text)
    cons = db.Column(db.Text)
    focus_next = db.Column(db.Text)
    note = db.Column(db.Text)
    created_at = db.Column(db.String(40))
