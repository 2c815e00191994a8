from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from cipherquiz import socketio
from cipherquiz.events import NAMESPACE, admin_group, room_group
from cipherquiz.services.session import Notifier
from typing import Any, Dict


class SocketIONotifier(Notifier):
    """Delivers engine pushes through Socket.IO rooms on the /ws namespace."""

    def to_room(self, code, event, payload):
        socketio.emit(event, payload, to=room_group(code), namespace=NAMESPACE)

    def to_admins(self, code, event, payload):
        socketio.emit(event, payload, to=admin_group(code), namespace=NAMESPACE)

    def to_connection(self, connection_id, event, payload):
        if not connection_id:
            return
        socketio.emit(event, payload, to=connection_id, namespace=NAMESPACE)


def _engine():
    return current_app.extensions['cipherquiz']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _payload(data: Any) -> Dict[str, Any]:
    # Clients may emit bare strings or lists; treat them as an empty payload
    return data if isinstance(data, dict) else {}


def _code(data: Dict[str, Any]) -> str:
    return str(data.get('roomCode') or data.get('room_code') or '').strip().upper()


def _token(data: Dict[str, Any]) -> str:
    return str(data.get('adminToken') or data.get('admin_token') or '')


def _pid(data: Dict[str, Any]) -> str:
    return str(data.get('participantId') or data.get('participant_id') or '')


def _join_as_admin(code: str) -> None:
    join_room(room_group(code))
    join_room(admin_group(code))


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(reason=None):
    current_app.logger.info(f"[disconnect] sid={_get_sid()} reason={reason}")


# ---- admin events ----

def handle_create_room(data):
    data = _payload(data)
    result = _engine().create_room(data.get('name') or '')
    _join_as_admin(result.code)
    current_app.logger.info(f"[ws-create] room={result.code} sid={_get_sid()}")
    return result.to_dict()


def handle_update_config(data):
    data = _payload(data)
    ok = _engine().update_config(_code(data), _token(data), _payload(data.get('config')))
    return {'success': ok}


def handle_get_room_info(data):
    data = _payload(data)
    return _engine().get_room_info(_code(data), _token(data))


def handle_start_quiz(data):
    data = _payload(data)
    return {'success': _engine().start_quiz(_code(data), _token(data))}


def handle_finish_quiz(data):
    data = _payload(data)
    return {'success': _engine().finish_quiz(_code(data), _token(data))}


def handle_approve(data):
    data = _payload(data)
    return {'success': _engine().approve(_code(data), _token(data), _pid(data))}


def handle_reject(data):
    data = _payload(data)
    ok = _engine().reject(_code(data), _token(data), _pid(data), data.get('reason') or '')
    return {'success': ok}


def handle_approve_all(data):
    data = _payload(data)
    return {'approved': _engine().approve_all(_code(data), _token(data))}


def handle_kick_participant(data):
    data = _payload(data)
    ok = _engine().kick_participant(_code(data), _token(data), _pid(data), data.get('reason') or '')
    return {'success': ok}


def handle_close_room(data):
    data = _payload(data)
    code = _code(data)
    ok = _engine().close_room(code, _token(data))
    if ok:
        leave_room(admin_group(code))
        leave_room(room_group(code))
    return {'success': ok}


def handle_show_results(data):
    data = _payload(data)
    return {'success': _engine().show_results(_code(data), _token(data))}


def handle_resume_admin(data):
    data = _payload(data)
    code = _code(data)
    state = _engine().resume_admin(code, _token(data), _get_sid())
    if state is None:
        return {'success': False, 'state': None}
    _join_as_admin(code)
    return {'success': True, 'state': state.value}


def handle_get_participant_details(data):
    data = _payload(data)
    return _engine().get_participant_details(_code(data), _token(data), _pid(data))


def handle_check_time(data):
    data = _payload(data)
    return {'elapsed': _engine().check_time(_code(data))}


# ---- participant events ----

def handle_request_join(data):
    data = _payload(data)
    code = _code(data)
    result = _engine().request_join(
        code,
        data.get('displayName') or data.get('display_name') or '',
        participant_id=_pid(data) or None,
        connection_id=_get_sid(),
    )
    if result.success:
        join_room(room_group(code))
    return result.to_dict()


def handle_resume_participant(data):
    data = _payload(data)
    code = _code(data)
    status = _engine().resume_participant(code, _pid(data), _get_sid())
    if status.value != 'NotFound':
        join_room(room_group(code))
    return {'status': status.value}


def handle_get_state(data):
    data = _payload(data)
    return _engine().get_state(_code(data), _pid(data))


def handle_get_questions(data):
    data = _payload(data)
    return _engine().get_questions(_code(data), _pid(data))


def handle_submit_answer(data):
    data = _payload(data)
    result = _engine().submit_answer(
        _code(data),
        _pid(data),
        str(data.get('questionId') or data.get('question_id') or ''),
        str(data.get('answer') or ''),
    )
    return result.to_dict()


def handle_report_proctor_event(data):
    data = _payload(data)
    event = {'type': data.get('type') or data.get('eventType'), 'content': data.get('content') or ''}
    return {'success': _engine().report_proctor_event(_code(data), _pid(data), event)}


_HANDLERS = {
    'createRoom': handle_create_room,
    'updateConfig': handle_update_config,
    'getRoomInfo': handle_get_room_info,
    'startQuiz': handle_start_quiz,
    'finishQuiz': handle_finish_quiz,
    'approve': handle_approve,
    'reject': handle_reject,
    'approveAll': handle_approve_all,
    'kickParticipant': handle_kick_participant,
    'closeRoom': handle_close_room,
    'showResults': handle_show_results,
    'resumeAdmin': handle_resume_admin,
    'getParticipantDetails': handle_get_participant_details,
    'checkTime': handle_check_time,
    'requestJoin': handle_request_join,
    'resumeParticipant': handle_resume_participant,
    'getState': handle_get_state,
    'getQuestions': handle_get_questions,
    'submitAnswer': handle_submit_answer,
    'reportProctorEvent': handle_report_proctor_event,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        for name, handler in _HANDLERS.items():
            socketio.on_event(name, handler, namespace=namespace)
