"""Read-side views of a room: scoreboard, participant list, final results."""

from typing import Any, Dict, List

from cipherquiz.domain import Room


def _ordered_states(room: Room):
    """(participant, quiz state) pairs in join order, skipping anyone without a quiz."""
    return [(p, room.quiz[p.participant_id]) for p in room.participants if p.participant_id in room.quiz]


def build_scoreboard(room: Room) -> List[Dict[str, Any]]:
    """Entries sorted by score, highest first; ties keep join order."""
    entries = [
        {
            'participant_id': qs.participant_id,
            'display_name': qs.display_name,
            'score': round(qs.score, 2),
            'is_finished': p.is_finished,
            'current_question_index': qs.current_index + 1,
            'total': qs.total,
        }
        for p, qs in _ordered_states(room)
    ]
    return sorted(entries, key=lambda e: e['score'], reverse=True)


def participant_list(room: Room) -> List[Dict[str, Any]]:
    out = []
    for p in room.participants:
        qs = room.quiz.get(p.participant_id)
        out.append({
            'id': p.participant_id,
            'name': p.display_name,
            'approved': p.is_approved,
            'finished': p.is_finished,
            'completed': qs.completed if qs else 0,
            'total': qs.total if qs else 0,
            'proctor_warnings': len(room.proctor_logs.get(p.participant_id, [])),
        })
    return out


def build_final_results(room: Room) -> Dict[str, Any]:
    """The document report and export collaborators render from.

    Participants are ranked by score. ``topic_stats`` aggregates every
    question across participants so weak topics stand out.
    """
    participants = []
    topic_stats: Dict[str, Dict[str, Any]] = {}

    for p, qs in _ordered_states(room):
        questions = []
        solved = failed = 0
        for q in sorted(qs.questions, key=lambda q: q.position):
            stats = topic_stats.setdefault(q.topic, {'topic': q.topic, 'total': 0, 'solved': 0, 'failed': 0})
            stats['total'] += 1
            if q.is_solved:
                solved += 1
                stats['solved'] += 1
            elif q.is_failed:
                failed += 1
                stats['failed'] += 1
            questions.append({
                'position': q.position,
                'topic': q.topic,
                'prompt': q.prompt,
                'data': dict(q.data),
                'user_answer': q.user_answer,
                'correct_answer': q.correct_answer,
                'is_solved': q.is_solved,
                'attempts': q.attempts,
                'earned': round(q.remaining_score, 2) if q.is_solved else 0,
            })
        logs = room.proctor_logs.get(qs.participant_id, [])
        participants.append({
            'participant_id': qs.participant_id,
            'display_name': qs.display_name,
            'score': round(qs.score, 2),
            'is_finished': p.is_finished,
            'completed': qs.completed,
            'total': qs.total,
            'solved': solved,
            'failed': failed,
            'proctor_warnings': len(logs),
            'proctor_logs': [e.to_dict() for e in logs],
            'questions': questions,
        })

    participants.sort(key=lambda e: e['score'], reverse=True)
    for rank, entry in enumerate(participants, start=1):
        entry['rank'] = rank

    for stats in topic_stats.values():
        stats['success_rate'] = round(100.0 * stats['solved'] / stats['total'], 1) if stats['total'] else 0.0

    return {
        'room_code': room.code,
        'room_name': room.name,
        'state': room.state.value,
        'started_at': room.started_at.isoformat() if room.started_at else None,
        'config': room.config.to_dict(),
        'participants': participants,
        'topic_stats': sorted(topic_stats.values(), key=lambda s: s['topic']),
    }
