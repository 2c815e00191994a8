from cipherquiz import db
from cipherquiz.domain import CustomQuestion, utcnow
from flask_login import UserMixin
from datetime import timezone


def _aware(value):
    # sqlite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AdminUser(UserMixin):
    """The single shared-password admin account; never stored."""
    id = 'admin'

    def to_dict(self):
        return {'id': self.id, 'role': 'admin'}


class RoomRecord(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    state = db.Column(db.String(16), nullable=False, default='Lobby')
    payload = db.Column(db.Text, nullable=False)  # JSON snapshot of domain.Room
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'state': self.state,
            'updated_at': _aware(self.updated_at).isoformat() if self.updated_at else None,
        }


class ArchivedRoomRecord(db.Model):
    __tablename__ = 'archived_room'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(6), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False, default='')
    state = db.Column(db.String(16), nullable=False)
    payload = db.Column(db.Text, nullable=False)
    archived_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'state': self.state,
            'archived_at': _aware(self.archived_at).isoformat() if self.archived_at else None,
        }


class CustomQuestionRecord(db.Model):
    __tablename__ = 'custom_question'
    id = db.Column(db.String(36), primary_key=True)
    topic = db.Column(db.String(32), nullable=False)
    mode = db.Column(db.String(16), nullable=False, default='Encrypt')
    key = db.Column(db.String(128), nullable=False, default='')
    text = db.Column(db.Text, nullable=False)
    is_analysis = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    @classmethod
    def from_domain(cls, cq: CustomQuestion) -> 'CustomQuestionRecord':
        return cls(
            id=cq.id,
            topic=cq.topic,
            mode=cq.mode,
            key=cq.key,
            text=cq.text,
            is_analysis=cq.is_analysis,
            created_at=cq.created_at,
        )

    def to_domain(self) -> CustomQuestion:
        return CustomQuestion(
            id=self.id,
            topic=self.topic,
            mode=self.mode,
            key=self.key or '',
            text=self.text,
            is_analysis=bool(self.is_analysis),
            created_at=_aware(self.created_at),
        )

    def to_dict(self):
        return self.to_domain().to_dict()
