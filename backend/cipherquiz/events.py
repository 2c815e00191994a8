"""Names of the Socket.IO events the server pushes to clients."""

NAMESPACE = '/ws'

JOIN_REQUEST = 'join_request'
JOIN_APPROVED = 'join_approved'
JOIN_REJECTED = 'join_rejected'
CONFIG_UPDATED = 'config_updated'
QUIZ_STARTED = 'quiz_started'
QUIZ_FINISHED = 'quiz_finished'
PARTICIPANT_LIST_CHANGED = 'participant_list_changed'
SCOREBOARD_UPDATED = 'scoreboard_updated'
PROCTOR_EVENT = 'proctor_event'
ROOM_CLOSED = 'room_closed'
KICKED = 'kicked'
SHOW_RESULTS = 'show_results'


def room_group(code: str) -> str:
    return f"room:{code}"


def admin_group(code: str) -> str:
    return f"room:{code}:admin"
