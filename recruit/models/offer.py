from recruit.extensions import db


class Offer(db.Model):
    __tablename__ = "offers"

    id = db.Column(db.String(64), primary_key=True)
    candidate_id = db.Column(db.String(64), index=True)
    job_id = db.Column(db.String(64))
    salary = db.Column(db.String(100))
    salary_note = db.Column(db.String(255))
    start_date = db.Column(db.String(40))
    offer_status = db.Column(db.String(20))
    note = db.Column(db.Text)
    created_at = db.Column(db.String(40))
    updated_at = db.Column(db.String(40))
