"""Room lifecycle, admission, answering and time limits.

``QuizEngine`` keeps one in-memory handle per active room. Every mutation
happens under that room's lock and is followed by a snapshot write to the
room store; a failed write is logged and the in-memory room stays
authoritative. Admin calls carry the room's admin token and quietly do
nothing when it does not match.
"""

import hmac
import logging
import random
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from cipherquiz import events
from cipherquiz.domain import (
    MAX_ATTEMPTS,
    AnswerResult,
    CreateRoomResult,
    JoinResult,
    Participant,
    ParticipantQuizState,
    ProctorEvent,
    QuizConfig,
    ResumeStatus,
    Room,
    RoomState,
    new_id,
    utcnow,
)
from cipherquiz.services.questions import QuestionGenerator, answers_match, clone_questions
from cipherquiz.services.results import build_final_results, build_scoreboard, participant_list
from cipherquiz.services.store import RoomStoreError

logger = logging.getLogger(__name__)

CODE_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'
CODE_LENGTH = 6


class Notifier:
    """Push channel to clients. The base class drops everything."""

    def to_room(self, code: str, event: str, payload: Dict[str, Any]) -> None:
        pass

    def to_admins(self, code: str, event: str, payload: Dict[str, Any]) -> None:
        pass

    def to_connection(self, connection_id: str, event: str, payload: Dict[str, Any]) -> None:
        pass


class _RoomHandle:
    def __init__(self, room: Room):
        self.room = room
        self.lock = threading.Lock()
        self.closed = False


def _norm(code: Optional[str]) -> str:
    return (code or '').strip().upper()


def _token_ok(room: Room, token: Optional[str]) -> bool:
    # compare_digest only takes ASCII str, so compare the UTF-8 bytes
    return hmac.compare_digest(str(token or '').encode('utf-8'), room.admin_token.encode('utf-8'))


class QuizEngine:
    def __init__(self, store, generator: QuestionGenerator, notifier: Optional[Notifier] = None,
                 clock: Optional[Callable] = None, rng: Optional[random.Random] = None,
                 default_language: str = 'tr'):
        self.store = store
        self.generator = generator
        self.notifier = notifier or Notifier()
        self.clock = clock or utcnow
        self.rng = rng or random.Random()
        self.default_language = default_language
        self._rooms: Dict[str, _RoomHandle] = {}
        self._registry_lock = threading.Lock()

    # ---- plumbing ----

    def _handle(self, code: str) -> Optional[_RoomHandle]:
        with self._registry_lock:
            handle = self._rooms.get(code)
            if handle is not None:
                return handle
            try:
                room = self.store.get(code)
            except RoomStoreError as exc:
                logger.error(f"[load] room={code} error={exc}")
                return None
            if room is None:
                return None
            handle = _RoomHandle(room)
            self._rooms[code] = handle
            logger.info(f"[load] room={code} state={room.state.value}")
            return handle

    @contextmanager
    def _locked(self, code: Optional[str]):
        handle = self._handle(_norm(code))
        if handle is None:
            yield None
            return
        with handle.lock:
            yield None if handle.closed else handle.room

    @contextmanager
    def _admin(self, code: Optional[str], token: Optional[str]):
        with self._locked(code) as room:
            if room is not None and _token_ok(room, token):
                yield room
            else:
                if room is not None:
                    logger.warning(f"[auth] room={room.code} bad admin token")
                yield None

    def _save(self, room: Room) -> None:
        try:
            self.store.update(room)
        except RoomStoreError as exc:
            logger.error(f"[save] room={room.code} error={exc}")

    def _archive(self, room: Room) -> None:
        try:
            self.store.archive(room)
        except RoomStoreError as exc:
            logger.error(f"[archive] room={room.code} error={exc}")

    def _new_code(self) -> str:
        while True:
            code = ''.join(self.rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if code in self._rooms:
                continue
            try:
                if self.store.get(code) is not None:
                    continue
            except RoomStoreError as exc:
                logger.error(f"[create] collision check failed code={code} error={exc}")
            return code

    def _push_participants(self, room: Room) -> None:
        self.notifier.to_admins(room.code, events.PARTICIPANT_LIST_CHANGED,
                                {'room_code': room.code, 'participants': participant_list(room)})

    def _push_scoreboard(self, room: Room) -> None:
        self.notifier.to_room(room.code, events.SCOREBOARD_UPDATED,
                              {'room_code': room.code, 'scoreboard': build_scoreboard(room)})

    def _time_elapsed(self, room: Room) -> bool:
        limit = room.config.time_limit_minutes
        if room.state is not RoomState.RUNNING or not limit or limit <= 0 or room.started_at is None:
            return False
        return self.clock() >= room.started_at + timedelta(minutes=limit)

    def _enforce_time_limit(self, room: Room) -> bool:
        if not self._time_elapsed(room):
            return False
        pending = [p for p in room.participants if not p.is_finished]
        if pending:
            for p in pending:
                p.is_finished = True
            logger.info(f"[time-up] room={room.code} finished={len(pending)}")
            self._save(room)
            self._push_participants(room)
            self._push_scoreboard(room)
        return True

    def _build_questions(self, room: Room, master=None):
        if master is not None:
            return clone_questions(master)
        return self.generator.build(room.config, self.rng)

    def _ensure_quiz_state(self, room: Room, participant: Participant, master=None) -> None:
        if participant.participant_id in room.quiz:
            return
        if master is None and room.config.same_questions_for_everyone and room.quiz:
            master = next(iter(room.quiz.values())).questions
        qs = ParticipantQuizState(
            participant_id=participant.participant_id,
            display_name=participant.display_name,
            questions=self._build_questions(room, master),
        )
        room.quiz[participant.participant_id] = qs
        participant.is_finished = qs.current_index >= qs.total

    def _approve(self, room: Room, participant: Participant) -> None:
        participant.is_approved = True
        if room.state is RoomState.RUNNING:
            self._ensure_quiz_state(room, participant)
        self.notifier.to_connection(participant.connection_id, events.JOIN_APPROVED, {
            'participant_id': participant.participant_id,
            'room_code': room.code,
            'room_name': room.name,
            'language': room.config.language,
            'state': room.state.value,
        })

    # ---- admin operations ----

    def create_room(self, name: str) -> CreateRoomResult:
        with self._registry_lock:
            code = self._new_code()
            room = Room(
                code=code,
                name=(name or '').strip() or code,
                admin_token=new_id(),
                config=replace(QuizConfig.default(), language=self.default_language),
            )
            self._rooms[code] = _RoomHandle(room)
        try:
            self.store.create(room)
        except RoomStoreError as exc:
            logger.error(f"[create] room={code} error={exc}")
        logger.info(f"[create] room={code} name={room.name!r}")
        return CreateRoomResult(code=code, admin_token=room.admin_token)

    def update_config(self, code: str, token: str, config: Union[QuizConfig, Dict[str, Any]]) -> bool:
        if not isinstance(config, QuizConfig):
            config = QuizConfig.from_dict(config)
        with self._admin(code, token) as room:
            if room is None:
                return False
            room.config = config
            self._save(room)
            logger.info(f"[config] room={room.code} topics={[t.value for t in config.topics]} "
                        f"custom={len(config.custom_question_ids)} language={config.language}")
            self.notifier.to_admins(room.code, events.CONFIG_UPDATED,
                                    {'room_code': room.code, 'config': config.to_dict()})
            return True

    def get_room_info(self, code: str, token: str) -> Optional[Dict[str, Any]]:
        with self._admin(code, token) as room:
            if room is None:
                return None
            return {
                'room_code': room.code,
                'room_name': room.name,
                'state': room.state.value,
                'config': room.config.to_dict(),
                'started_at': room.started_at.isoformat() if room.started_at else None,
                'participants': participant_list(room),
                'scoreboard': build_scoreboard(room),
            }

    def start_quiz(self, code: str, token: str) -> bool:
        with self._admin(code, token) as room:
            if room is None or room.state is not RoomState.LOBBY:
                return False
            master = None
            if room.config.same_questions_for_everyone:
                master = self.generator.build(room.config, self.rng)
            # Build every set before touching the room so a failure leaves it in Lobby
            approved = [p for p in room.participants if p.is_approved]
            quiz = {
                p.participant_id: ParticipantQuizState(
                    participant_id=p.participant_id,
                    display_name=p.display_name,
                    questions=self._build_questions(room, master),
                )
                for p in approved
            }
            room.quiz = quiz
            for p in approved:
                qs = quiz[p.participant_id]
                p.is_finished = qs.current_index >= qs.total
            room.state = RoomState.RUNNING
            room.started_at = self.clock()
            self._save(room)
            logger.info(f"[start] room={room.code} participants={len(room.quiz)} "
                        f"same_questions={room.config.same_questions_for_everyone}")
            self.notifier.to_room(room.code, events.QUIZ_STARTED, {
                'room_code': room.code,
                'started_at': room.started_at.isoformat(),
                'time_limit_minutes': room.config.time_limit_minutes,
                'language': room.config.language,
            })
            self._push_scoreboard(room)
            self._push_participants(room)
            return True

    def finish_quiz(self, code: str, token: str) -> bool:
        with self._admin(code, token) as room:
            if room is None or room.state is not RoomState.RUNNING:
                return False
            room.state = RoomState.FINISHED
            for p in room.participants:
                p.is_finished = True
            self._save(room)
            self._archive(room)
            logger.info(f"[finish] room={room.code}")
            self.notifier.to_room(room.code, events.QUIZ_FINISHED, {'room_code': room.code})
            self._push_participants(room)
            return True

    def approve(self, code: str, token: str, participant_id: str) -> bool:
        with self._admin(code, token) as room:
            p = room.find_participant(participant_id) if room else None
            if p is None:
                return False
            self._approve(room, p)
            self._save(room)
            logger.info(f"[approve] room={room.code} participant={p.participant_id}")
            self._push_participants(room)
            return True

    def approve_all(self, code: str, token: str) -> int:
        with self._admin(code, token) as room:
            if room is None:
                return 0
            pending = [p for p in room.participants if not p.is_approved]
            for p in pending:
                self._approve(room, p)
            if pending:
                self._save(room)
                self._push_participants(room)
            logger.info(f"[approve-all] room={room.code} approved={len(pending)}")
            return len(pending)

    def _remove_participant(self, room: Room, participant_id: str) -> Optional[Participant]:
        p = room.find_participant(participant_id)
        if p is not None:
            room.participants.remove(p)
        return p

    def reject(self, code: str, token: str, participant_id: str, reason: str = '') -> bool:
        with self._admin(code, token) as room:
            p = self._remove_participant(room, participant_id) if room else None
            if p is None:
                return False
            self._save(room)
            logger.info(f"[reject] room={room.code} participant={p.participant_id}")
            self.notifier.to_connection(p.connection_id, events.JOIN_REJECTED,
                                        {'room_code': room.code, 'reason': reason or ''})
            self._push_participants(room)
            return True

    def kick_participant(self, code: str, token: str, participant_id: str, reason: str = '') -> bool:
        with self._admin(code, token) as room:
            p = self._remove_participant(room, participant_id) if room else None
            if p is None:
                return False
            self._save(room)
            logger.info(f"[kick] room={room.code} participant={p.participant_id} reason={reason!r}")
            self.notifier.to_connection(p.connection_id, events.KICKED,
                                        {'room_code': room.code, 'reason': reason or ''})
            self._push_participants(room)
            if room.state is not RoomState.LOBBY:
                self._push_scoreboard(room)
            return True

    def close_room(self, code: str, token: str) -> bool:
        code = _norm(code)
        handle = self._handle(code)
        if handle is None:
            return False
        with handle.lock:
            room = handle.room
            if handle.closed or not _token_ok(room, token):
                return False
            self._archive(room)
            try:
                self.store.remove(code)
            except RoomStoreError as exc:
                logger.error(f"[close] room={code} error={exc}")
            handle.closed = True
            with self._registry_lock:
                self._rooms.pop(code, None)
            logger.info(f"[close] room={code}")
            self.notifier.to_room(code, events.ROOM_CLOSED, {'room_code': code})
            return True

    def show_results(self, code: str, token: str) -> bool:
        with self._admin(code, token) as room:
            if room is None:
                return False
            self.notifier.to_room(room.code, events.SHOW_RESULTS, {'room_code': room.code})
            return True

    def resume_admin(self, code: str, token: str, connection_id: str) -> Optional[RoomState]:
        with self._admin(code, token) as room:
            if room is None:
                return None
            self.notifier.to_connection(connection_id, events.PARTICIPANT_LIST_CHANGED,
                                        {'room_code': room.code, 'participants': participant_list(room)})
            self.notifier.to_connection(connection_id, events.SCOREBOARD_UPDATED,
                                        {'room_code': room.code, 'scoreboard': build_scoreboard(room)})
            logger.info(f"[resume-admin] room={room.code} connection={connection_id}")
            return room.state

    def get_participant_details(self, code: str, token: str, participant_id: str) -> Optional[Dict[str, Any]]:
        with self._admin(code, token) as room:
            p = room.find_participant(participant_id) if room else None
            if p is None:
                return None
            qs = room.quiz.get(p.participant_id)
            return {
                'participant': p.to_dict(),
                'quiz': qs.to_dict() if qs else None,
                'proctor_logs': [e.to_dict() for e in room.proctor_logs.get(p.participant_id, [])],
            }

    def get_results(self, code: str, token: str) -> Optional[Dict[str, Any]]:
        with self._admin(code, token) as room:
            if room is not None:
                return build_final_results(room)
        try:
            archived = self.store.get_archived(_norm(code))
        except RoomStoreError as exc:
            logger.error(f"[results] room={code} error={exc}")
            return None
        if archived is None or not _token_ok(archived, token):
            return None
        return build_final_results(archived)

    def check_time(self, code: str) -> bool:
        with self._locked(code) as room:
            if room is None:
                return False
            return self._enforce_time_limit(room)

    def check_all_times(self) -> List[str]:
        """Run ``check_time`` over every known room; returns codes that are out of time."""
        with self._registry_lock:
            codes = set(self._rooms)
        try:
            codes.update(self.store.list_codes())
        except RoomStoreError as exc:
            logger.error(f"[sweep] listing rooms failed: {exc}")
        return [code for code in sorted(codes) if self.check_time(code)]

    # ---- participant operations ----

    def request_join(self, code: str, display_name: str, participant_id: Optional[str] = None,
                     connection_id: str = '') -> JoinResult:
        name = (display_name or '').strip()
        with self._locked(code) as room:
            if room is None:
                return JoinResult(success=False, message='Room not found')
            existing = room.find_participant(participant_id)
            if existing is not None:
                existing.connection_id = connection_id
                if name:
                    existing.display_name = name
                    if existing.participant_id in room.quiz:
                        room.quiz[existing.participant_id].display_name = name
                self._save(room)
                logger.info(f"[rejoin] room={room.code} participant={existing.participant_id}")
                self._push_participants(room)
                return JoinResult(
                    success=True,
                    participant_id=existing.participant_id,
                    message='Reconnected',
                    room_name=room.name,
                    language=room.config.language,
                )
            if not name:
                return JoinResult(success=False, message='Display name is required')
            p = Participant(display_name=name, connection_id=connection_id)
            room.participants.append(p)
            self._save(room)
            logger.info(f"[join] room={room.code} participant={p.participant_id} name={name!r}")
            self.notifier.to_admins(room.code, events.JOIN_REQUEST, {
                'room_code': room.code,
                'participant_id': p.participant_id,
                'display_name': p.display_name,
            })
            self._push_participants(room)
            return JoinResult(
                success=True,
                participant_id=p.participant_id,
                message='Waiting for approval',
                room_name=room.name,
                language=room.config.language,
            )

    def resume_participant(self, code: str, participant_id: str, connection_id: str) -> ResumeStatus:
        with self._locked(code) as room:
            p = room.find_participant(participant_id) if room else None
            if p is None:
                return ResumeStatus.NOT_FOUND
            p.connection_id = connection_id
            self._save(room)
            logger.info(f"[resume] room={room.code} participant={p.participant_id}")
            return ResumeStatus(room.state.value)

    def get_state(self, code: str, participant_id: str) -> Optional[Dict[str, Any]]:
        with self._locked(code) as room:
            p = room.find_participant(participant_id) if room else None
            if p is None:
                return None
            qs = room.quiz.get(p.participant_id)
            return {
                'room_code': room.code,
                'room_name': room.name,
                'state': room.state.value,
                'is_approved': p.is_approved,
                'is_finished': p.is_finished,
                'started_at': room.started_at.isoformat() if room.started_at else None,
                'time_limit_minutes': room.config.time_limit_minutes,
                'language': room.config.language,
                'quiz': qs.to_dict(redact=True) if qs else None,
            }

    def get_questions(self, code: str, participant_id: str) -> List[Dict[str, Any]]:
        with self._locked(code) as room:
            if room is None or room.state is RoomState.LOBBY:
                return []
            qs = room.quiz.get(participant_id or '')
            if qs is None or room.find_participant(participant_id) is None:
                return []
            return [q.to_dict(redact=True) for q in qs.questions]

    def submit_answer(self, code: str, participant_id: str, question_id: str, answer: str) -> AnswerResult:
        with self._locked(code) as room:
            if room is None:
                return AnswerResult(message='Room not found')
            p = room.find_participant(participant_id)
            qs = room.quiz.get(participant_id or '')
            if p is None or qs is None:
                return AnswerResult(message='Participant not found')
            q = qs.find_question(question_id)
            if q is None:
                return AnswerResult(message='Question not found', is_finished=p.is_finished)

            if q.attempts >= MAX_ATTEMPTS:
                return AnswerResult(message='Question already failed.', is_finished=p.is_finished)
            if q.is_solved:
                return AnswerResult(message='Question already solved.',
                                    remaining_score=q.remaining_score, is_finished=p.is_finished)
            if room.state is not RoomState.RUNNING:
                return AnswerResult(message='Quiz is not running.',
                                    remaining_score=q.remaining_score, is_finished=p.is_finished)
            if self._enforce_time_limit(room):
                return AnswerResult(message='Time is up.', remaining_score=q.remaining_score, is_finished=True)
            if p.is_finished:
                return AnswerResult(message='Quiz already finished.',
                                    remaining_score=q.remaining_score, is_finished=True)

            q.user_answer = (answer or '').strip()
            if answers_match(q, answer):
                awarded = q.remaining_score
                qs.score += awarded
                q.is_solved = True
                result = AnswerResult(is_correct=True, score_awarded=awarded,
                                      remaining_score=q.remaining_score, message='Correct!')
                qs.current_index = min(qs.current_index + 1, qs.total)
            else:
                q.attempts += 1
                if q.attempts >= MAX_ATTEMPTS:
                    q.remaining_score = 0.0
                    qs.current_index = min(qs.current_index + 1, qs.total)
                    message = 'Wrong answer. No attempts left.'
                else:
                    message = 'Wrong answer. One attempt left.'
                result = AnswerResult(is_correct=False, remaining_score=q.remaining_score, message=message)

            p.is_finished = qs.current_index >= qs.total
            result.is_finished = p.is_finished
            self._save(room)
            logger.info(f"[answer] room={room.code} participant={p.participant_id} question={q.position} "
                        f"correct={result.is_correct} attempts={q.attempts} score={qs.score:.2f}")
            if result.is_correct or q.is_closed:
                self._push_scoreboard(room)
                if p.is_finished:
                    self._push_participants(room)
            return result

    def report_proctor_event(self, code: str, participant_id: str,
                             event: Union[ProctorEvent, Dict[str, Any], str]) -> bool:
        if isinstance(event, dict):
            event = ProctorEvent(type=str(event.get('type') or 'unknown'), content=str(event.get('content') or ''))
        elif isinstance(event, str):
            event = ProctorEvent(type=event)
        with self._locked(code) as room:
            p = room.find_participant(participant_id) if room else None
            if p is None:
                return False
            event.timestamp = self.clock()
            room.proctor_logs.setdefault(p.participant_id, []).append(event)
            self._save(room)
            logger.info(f"[proctor] room={room.code} participant={p.participant_id} type={event.type}")
            self.notifier.to_admins(room.code, events.PROCTOR_EVENT, {
                'room_code': room.code,
                'participant_id': p.participant_id,
                'display_name': p.display_name,
                'type': event.type,
                'content': event.content,
                'timestamp': event.timestamp.isoformat(),
                'warnings': len(room.proctor_logs[p.participant_id]),
            })
            return True
