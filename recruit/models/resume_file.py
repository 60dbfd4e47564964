from recruit.extensions import db


class ResumeFile(db.Model):
    __tablename__ = "resume_files"

    id = db.Column(db.String(64), primary_key=True)
    candidate_id = db.Column(db.String(64), index=True)
    filename = db.Column(db.String(255))
    original_name = db.Column(db.String(255))
    content_type = db.Column(db.String(100))
    size = db.Column(db.Integer)
    uploaded_at = db.Column(db.String(40))
    url = db.Column(db.Text)
    storage = db.Column(db.String(20))
    bucket = db.Column(db.String(100))
