from recruit.extensions import db


class Job(db.Model):
    __tablename__ = "jobs"

    id = db.Column(db.String(64), primary_key=True)
    title = db.Column(db.String(255))
    department = db.Column(db.String(255))
    location = db.Column(db.String(255))
    owner = db.Column(db.String(255))
    headcount = db.Column(db.Integer)
    level = db.Column(db.String(100))
    state = db.Column(db.String(20))
    category = db.Column(db.String(100))
    jd = db.Column(db.Text)
    created_at = db.Column(db.String(40))
    updated_at = db.Column(db.String(40))
