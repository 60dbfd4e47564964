from recruit.extensions import db


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.String(64), primary_key=True)
    candidate_id = db.Column(db.String(64), index=True)
    type = db.Column(db.String(50))
    message = db.Column(db.Text)
    actor = db.Column(db.String(255))
    created_at = db.Column(db.String(40))
