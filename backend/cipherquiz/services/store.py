"""Room and custom-question persistence.

Rooms are stored as whole JSON snapshots keyed by room code. Archiving
appends a timestamped copy that outlives the active room, so a code can
have several archive entries and the latest one wins on lookup.
"""

import json
import logging
import threading
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from cipherquiz.domain import CustomQuestion, Room, utcnow

logger = logging.getLogger(__name__)


class RoomStoreError(Exception):
    """Raised when the backing storage cannot read or write a room."""


def _dump(room: Room) -> str:
    return json.dumps(room.to_dict())


def _load(payload: str) -> Room:
    return Room.from_dict(json.loads(payload))


class MemoryRoomStore:
    """Process-local store; snapshots are copied in and out."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rooms: Dict[str, str] = {}
        self._archive: List[tuple] = []

    def get(self, code: str) -> Optional[Room]:
        with self._lock:
            payload = self._rooms.get(code)
        return _load(payload) if payload else None

    def create(self, room: Room) -> None:
        with self._lock:
            if room.code in self._rooms:
                raise RoomStoreError(f"room {room.code} already exists")
            self._rooms[room.code] = _dump(room)

    def update(self, room: Room) -> None:
        with self._lock:
            self._rooms[room.code] = _dump(room)

    def remove(self, code: str) -> None:
        with self._lock:
            self._rooms.pop(code, None)

    def archive(self, room: Room) -> None:
        with self._lock:
            self._archive.append((utcnow(), room.code, _dump(room)))

    def list_archived(self) -> List[Room]:
        with self._lock:
            entries = list(reversed(self._archive))
        return [_load(payload) for _, _, payload in entries]

    def get_archived(self, code: str) -> Optional[Room]:
        with self._lock:
            for _, archived_code, payload in reversed(self._archive):
                if archived_code == code:
                    return _load(payload)
        return None

    def list_codes(self) -> List[str]:
        with self._lock:
            return list(self._rooms)


class SqlRoomStore:
    """Flask-SQLAlchemy backed store.

    Every call runs in its own application context so the engine can use it
    from socket handlers and from the background sweeper alike.
    """

    def __init__(self, app):
        self.app = app

    def _run(self, what: str, fn):
        from cipherquiz import db
        with self.app.app_context():
            try:
                return fn(db)
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.error(f"[store] op={what} failed: {exc}")
                raise RoomStoreError(f"{what} failed") from exc

    def get(self, code: str) -> Optional[Room]:
        from cipherquiz.models import RoomRecord

        def op(db):
            rec = RoomRecord.query.filter_by(code=code).first()
            return _load(rec.payload) if rec else None
        return self._run('get', op)

    def create(self, room: Room) -> None:
        from cipherquiz.models import RoomRecord

        def op(db):
            db.session.add(RoomRecord(code=room.code, state=room.state.value, payload=_dump(room)))
            db.session.commit()
        self._run('create', op)

    def update(self, room: Room) -> None:
        from cipherquiz.models import RoomRecord

        def op(db):
            rec = RoomRecord.query.filter_by(code=room.code).first()
            if rec is None:
                rec = RoomRecord(code=room.code)
            rec.state = room.state.value
            rec.payload = _dump(room)
            db.session.add(rec)
            db.session.commit()
        self._run('update', op)

    def remove(self, code: str) -> None:
        from cipherquiz.models import RoomRecord

        def op(db):
            RoomRecord.query.filter_by(code=code).delete()
            db.session.commit()
        self._run('remove', op)

    def archive(self, room: Room) -> None:
        from cipherquiz.models import ArchivedRoomRecord

        def op(db):
            db.session.add(ArchivedRoomRecord(
                code=room.code,
                name=room.name,
                state=room.state.value,
                payload=_dump(room),
                archived_at=utcnow(),
            ))
            db.session.commit()
        self._run('archive', op)

    def list_archived(self) -> List[Room]:
        from cipherquiz.models import ArchivedRoomRecord

        def op(db):
            recs = ArchivedRoomRecord.query.order_by(
                ArchivedRoomRecord.archived_at.desc(), ArchivedRoomRecord.id.desc()
            ).all()
            return [_load(r.payload) for r in recs]
        return self._run('list_archived', op)

    def get_archived(self, code: str) -> Optional[Room]:
        from cipherquiz.models import ArchivedRoomRecord

        def op(db):
            rec = ArchivedRoomRecord.query.filter_by(code=code).order_by(
                ArchivedRoomRecord.archived_at.desc(), ArchivedRoomRecord.id.desc()
            ).first()
            return _load(rec.payload) if rec else None
        return self._run('get_archived', op)

    def list_codes(self) -> List[str]:
        from cipherquiz.models import RoomRecord

        def op(db):
            return [code for (code,) in db.session.query(RoomRecord.code).all()]
        return self._run('list_codes', op)


class SqlCustomQuestionStore:
    """Admin-authored question templates; also the generator's custom source."""

    def __init__(self, app):
        self.app = app

    def get_questions(self) -> List[CustomQuestion]:
        from cipherquiz.models import CustomQuestionRecord
        with self.app.app_context():
            recs = CustomQuestionRecord.query.order_by(CustomQuestionRecord.created_at.desc()).all()
            return [r.to_domain() for r in recs]

    def add(self, cq: CustomQuestion) -> CustomQuestion:
        from cipherquiz import db
        from cipherquiz.models import CustomQuestionRecord
        with self.app.app_context():
            try:
                db.session.add(CustomQuestionRecord.from_domain(cq))
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                raise
        logger.info(f"[custom] added id={cq.id} topic={cq.topic} mode={cq.mode}")
        return cq

    def delete(self, question_id: str) -> bool:
        from cipherquiz import db
        from cipherquiz.models import CustomQuestionRecord
        with self.app.app_context():
            rec = db.session.get(CustomQuestionRecord, question_id)
            if rec is None:
                return False
            db.session.delete(rec)
            db.session.commit()
        logger.info(f"[custom] deleted id={question_id}")
        return True
