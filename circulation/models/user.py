from datetime import datetime
from circulation.extensions import db

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    library_card = db.Column(db.String(32), unique=True, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="active")  # active/inactive/suspended

    membership_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("status IN ('active', 'inactive', 'suspended')", name="ck_users_status"),
    )

    @property
    def is_active_member(self) -> bool:
        return self.status == "active"
