"""Domain objects for quiz rooms.

Plain dataclasses that the engine mutates in memory and that the room
stores persist as JSON snapshots via ``to_dict`` / ``from_dict``.
"""

import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Topic(str, Enum):
    CAESAR = 'Caesar'
    VIGENERE = 'Vigenere'
    BASE64 = 'Base64'
    XOR = 'Xor'
    HILL = 'Hill'
    MONOALPHABETIC = 'Monoalphabetic'
    PLAYFAIR = 'Playfair'
    TRANSPOSITION = 'Transposition'

    @classmethod
    def parse(cls, name: str) -> Optional['Topic']:
        """Case-insensitive lookup; returns None for unknown topics."""
        key = (name or '').strip().lower()
        for topic in cls:
            if topic.value.lower() == key:
                return topic
        return None


class RoomState(str, Enum):
    LOBBY = 'Lobby'
    RUNNING = 'Running'
    FINISHED = 'Finished'


class ResumeStatus(str, Enum):
    NOT_FOUND = 'NotFound'
    LOBBY = 'Lobby'
    RUNNING = 'Running'
    FINISHED = 'Finished'


MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class QuizConfig:
    questions_per_topic: Dict[Topic, int] = field(default_factory=dict)
    mistakes_per_question: int = MAX_ATTEMPTS
    difficulty: int = 1
    time_limit_minutes: int = 30
    language: str = 'tr'
    custom_question_ids: List[str] = field(default_factory=list)
    is_cryptanalysis: bool = False
    same_questions_for_everyone: bool = False

    @property
    def topics(self) -> List[Topic]:
        return [t for t, n in self.questions_per_topic.items() if n > 0]

    @classmethod
    def default(cls) -> 'QuizConfig':
        return cls(questions_per_topic={Topic.CAESAR: 2, Topic.VIGENERE: 2})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'questions_per_topic': {t.value: n for t, n in self.questions_per_topic.items()},
            'mistakes_per_question': self.mistakes_per_question,
            'difficulty': self.difficulty,
            'time_limit_minutes': self.time_limit_minutes,
            'language': self.language,
            'custom_question_ids': list(self.custom_question_ids),
            'is_cryptanalysis': self.is_cryptanalysis,
            'same_questions_for_everyone': self.same_questions_for_everyone,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'QuizConfig':
        data = data or {}
        counts: Dict[Topic, int] = {}
        for name, count in (data.get('questions_per_topic') or {}).items():
            topic = Topic.parse(name)
            if topic is None:
                logger.warning(f"[config] dropping unknown topic={name!r}")
                continue
            try:
                counts[topic] = max(0, int(count))
            except (TypeError, ValueError):
                logger.warning(f"[config] bad count topic={name} count={count!r}")
        return cls(
            questions_per_topic=counts,
            mistakes_per_question=int(data.get('mistakes_per_question', MAX_ATTEMPTS)),
            difficulty=int(data.get('difficulty', 1)),
            time_limit_minutes=int(data.get('time_limit_minutes', 30)),
            language=data.get('language') or 'tr',
            custom_question_ids=[str(x) for x in data.get('custom_question_ids') or []],
            is_cryptanalysis=bool(data.get('is_cryptanalysis', False)),
            same_questions_for_everyone=bool(data.get('same_questions_for_everyone', False)),
        )


@dataclass
class QuestionState:
    topic: str
    prompt: str = ''
    input_hint: str = ''
    input_type: str = 'text'
    data: Dict[str, str] = field(default_factory=dict)
    correct_answer: str = ''
    attempts: int = 0
    remaining_score: float = 0.0
    position: int = 0
    total: int = 0
    user_answer: str = ''
    is_solved: bool = False
    id: str = field(default_factory=new_id)

    @property
    def is_failed(self) -> bool:
        return self.attempts >= MAX_ATTEMPTS

    @property
    def is_closed(self) -> bool:
        return self.is_solved or self.is_failed

    def clone(self) -> 'QuestionState':
        """Same puzzle, fresh identity and progress."""
        return QuestionState(
            topic=self.topic,
            prompt=self.prompt,
            input_hint=self.input_hint,
            input_type=self.input_type,
            data=dict(self.data),
            correct_answer=self.correct_answer,
            # every question in a set is worth the same share of 100
            remaining_score=100.0 / self.total if self.total else self.remaining_score,
            position=self.position,
            total=self.total,
        )

    def to_dict(self, redact: bool = False) -> Dict[str, Any]:
        payload = {
            'id': self.id,
            'topic': self.topic,
            'prompt': self.prompt,
            'input_hint': self.input_hint,
            'input_type': self.input_type,
            'data': dict(self.data),
            'attempts': self.attempts,
            'remaining_score': self.remaining_score,
            'position': self.position,
            'total': self.total,
            'user_answer': self.user_answer,
            'is_solved': self.is_solved,
        }
        if not redact:
            payload['correct_answer'] = self.correct_answer
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuestionState':
        return cls(
            id=data.get('id') or new_id(),
            topic=data.get('topic', ''),
            prompt=data.get('prompt', ''),
            input_hint=data.get('input_hint', ''),
            input_type=data.get('input_type', 'text'),
            data=dict(data.get('data') or {}),
            correct_answer=data.get('correct_answer', ''),
            attempts=int(data.get('attempts', 0)),
            remaining_score=float(data.get('remaining_score', 0.0)),
            position=int(data.get('position', 0)),
            total=int(data.get('total', 0)),
            user_answer=data.get('user_answer', ''),
            is_solved=bool(data.get('is_solved', False)),
        )


@dataclass
class ParticipantQuizState:
    participant_id: str
    display_name: str
    questions: List[QuestionState] = field(default_factory=list)
    current_index: int = 0
    score: float = 0.0

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def completed(self) -> int:
        return min(self.current_index, len(self.questions))

    @property
    def all_closed(self) -> bool:
        return all(q.is_closed for q in self.questions)

    def find_question(self, question_id: str) -> Optional[QuestionState]:
        return next((q for q in self.questions if q.id == question_id), None)

    def to_dict(self, redact: bool = False) -> Dict[str, Any]:
        return {
            'participant_id': self.participant_id,
            'display_name': self.display_name,
            'questions': [q.to_dict(redact=redact) for q in self.questions],
            'current_index': self.current_index,
            'score': self.score,
            'total': self.total,
            'completed': self.completed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParticipantQuizState':
        return cls(
            participant_id=data['participant_id'],
            display_name=data.get('display_name', ''),
            questions=[QuestionState.from_dict(q) for q in data.get('questions') or []],
            current_index=int(data.get('current_index', 0)),
            score=float(data.get('score', 0.0)),
        )


@dataclass
class Participant:
    display_name: str
    connection_id: str = ''
    is_approved: bool = False
    is_finished: bool = False
    participant_id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'participant_id': self.participant_id,
            'connection_id': self.connection_id,
            'display_name': self.display_name,
            'is_approved': self.is_approved,
            'is_finished': self.is_finished,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Participant':
        return cls(
            participant_id=data['participant_id'],
            connection_id=data.get('connection_id', ''),
            display_name=data.get('display_name', ''),
            is_approved=bool(data.get('is_approved', False)),
            is_finished=bool(data.get('is_finished', False)),
        )


@dataclass
class ProctorEvent:
    type: str
    content: str = ''
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'content': self.content, 'timestamp': _iso(self.timestamp)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProctorEvent':
        return cls(
            type=data.get('type', ''),
            content=data.get('content', ''),
            timestamp=_parse_dt(data.get('timestamp')) or utcnow(),
        )


@dataclass
class CustomQuestion:
    topic: str = Topic.CAESAR.value
    mode: str = 'Encrypt'
    key: str = ''
    text: str = ''
    is_analysis: bool = False
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_encrypt(self) -> bool:
        return (self.mode or '').strip().lower() in ('encrypt', 'encode')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'topic': self.topic,
            'mode': self.mode,
            'key': self.key,
            'text': self.text,
            'is_analysis': self.is_analysis,
            'created_at': _iso(self.created_at),
        }


@dataclass
class Room:
    code: str
    name: str
    admin_token: str
    config: QuizConfig = field(default_factory=QuizConfig.default)
    state: RoomState = RoomState.LOBBY
    started_at: Optional[datetime] = None
    participants: List[Participant] = field(default_factory=list)
    quiz: Dict[str, ParticipantQuizState] = field(default_factory=dict)
    proctor_logs: Dict[str, List[ProctorEvent]] = field(default_factory=dict)

    def find_participant(self, participant_id: Optional[str]) -> Optional[Participant]:
        if not participant_id:
            return None
        return next((p for p in self.participants if p.participant_id == participant_id), None)

    def snapshot(self) -> 'Room':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'name': self.name,
            'admin_token': self.admin_token,
            'config': self.config.to_dict(),
            'state': self.state.value,
            'started_at': _iso(self.started_at),
            'participants': [p.to_dict() for p in self.participants],
            'quiz': {pid: qs.to_dict() for pid, qs in self.quiz.items()},
            'proctor_logs': {pid: [e.to_dict() for e in events] for pid, events in self.proctor_logs.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Room':
        return cls(
            code=data['code'],
            name=data.get('name', ''),
            admin_token=data.get('admin_token', ''),
            config=QuizConfig.from_dict(data.get('config')),
            state=RoomState(data.get('state', RoomState.LOBBY.value)),
            started_at=_parse_dt(data.get('started_at')),
            participants=[Participant.from_dict(p) for p in data.get('participants') or []],
            quiz={pid: ParticipantQuizState.from_dict(qs) for pid, qs in (data.get('quiz') or {}).items()},
            proctor_logs={
                pid: [ProctorEvent.from_dict(e) for e in events]
                for pid, events in (data.get('proctor_logs') or {}).items()
            },
        )


@dataclass
class CreateRoomResult:
    code: str
    admin_token: str

    def to_dict(self) -> Dict[str, Any]:
        return {'room_code': self.code, 'admin_token': self.admin_token}


@dataclass
class JoinResult:
    success: bool
    participant_id: Optional[str] = None
    message: str = ''
    room_name: str = ''
    language: str = 'tr'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'participant_id': self.participant_id,
            'message': self.message,
            'room_name': self.room_name,
            'language': self.language,
        }


@dataclass
class AnswerResult:
    is_correct: bool = False
    score_awarded: float = 0.0
    remaining_score: float = 0.0
    message: str = ''
    is_finished: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_correct': self.is_correct,
            'score_awarded': self.score_awarded,
            'remaining_score': self.remaining_score,
            'message': self.message,
            'is_finished': self.is_finished,
        }
