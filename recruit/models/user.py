from recruit.extensions import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True)
    open_id = db.Column(db.String(100), index=True)
    union_id = db.Column(db.String(100))
    name = db.Column(db.String(255))
    avatar = db.Column(db.String(500))
    role = db.Column(db.String(20))
    department = db.Column(db.String(255))
    job_title = db.Column(db.String(255))
    provider = db.Column(db.String(20))
    created_at = db.Column(db.String(40))

    # for string representation
    def __repr__(self):
        return f"<User {self.name}>"
