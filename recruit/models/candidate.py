from recruit.extensions import db


class Candidate(db.Model):
    __tablename__ = "candidates"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    email = db.Column(db.String(255))
    job_id = db.Column(db.String(64))
    job_title = db.Column(db.String(255))
    source = db.Column(db.String(255))
    note = db.Column(db.Text)
    status = db.Column(db.String(50))

    # JSON encoded list
    tags = db.Column(db.Text)

    follow_next_action = db.Column(db.String(100))
    follow_at = db.Column(db.String(40))
    follow_note = db.Column(db.Text)

    created_at = db.Column(db.String(40))
    updated_at = db.Column(db.String(40))
