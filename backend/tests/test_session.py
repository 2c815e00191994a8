import string
import threading

import pytest

from cipherquiz.domain import CustomQuestion, QuizConfig, ResumeStatus, RoomState, Topic
from cipherquiz.services.questions import QuestionGenerator
from cipherquiz.services.session import QuizEngine
from cipherquiz.services.store import MemoryRoomStore, RoomStoreError


def _room_with(engine, custom_questions, *cqs, **config_kw):
    custom_questions.questions.extend(cqs)
    created = engine.create_room('Crypto 101')
    config_kw.setdefault('language', 'en')
    config = QuizConfig(custom_question_ids=[cq.id for cq in cqs], **config_kw)
    assert engine.update_config(created.code, created.admin_token, config)
    return created


def _approved(engine, created, name='Alice'):
    join = engine.request_join(created.code, name, connection_id=f"sid-{name}")
    assert join.success
    assert engine.approve(created.code, created.admin_token, join.participant_id)
    return join.participant_id


def _first_question_id(engine, created, pid):
    return engine.get_questions(created.code, pid)[0]['id']


HELLO = dict(topic='Caesar', mode='Encrypt', key='3', text='HELLO')
KHOOR = dict(topic='Caesar', mode='Decrypt', key='3', text='KHOOR')


def test_create_room_defaults(engine):
    created = engine.create_room('  Crypto 101  ')
    assert len(created.code) == 6
    assert set(created.code) <= set(string.ascii_uppercase + string.digits)

    info = engine.get_room_info(created.code, created.admin_token)
    assert info['room_name'] == 'Crypto 101'
    assert info['state'] == 'Lobby'
    assert info['config']['questions_per_topic'] == {'Caesar': 2, 'Vigenere': 2}
    assert info['config']['language'] == 'tr'
    assert info['config']['time_limit_minutes'] == 30


def test_room_codes_are_unique(engine):
    codes = {engine.create_room(f"room {i}").code for i in range(50)}
    assert len(codes) == 50


def test_admin_calls_with_wrong_token_or_room_do_nothing(engine):
    created = engine.create_room('Quiz')
    assert not engine.update_config(created.code, 'nope', QuizConfig(language='en'))
    assert not engine.start_quiz(created.code, 'nope')
    assert engine.get_room_info(created.code, 'nope') is None
    assert not engine.approve('ZZZZZZ', created.admin_token, 'someone')
    assert engine.get_room_info(created.code, created.admin_token)['config']['language'] == 'tr'


def test_non_ascii_admin_token_is_just_a_mismatch(engine):
    created = engine.create_room('Quiz')
    assert not engine.start_quiz(created.code, '\u015fifre')
    assert engine.get_room_info(created.code, '\u015fifre') is None
    assert engine.get_results(created.code, '\u015fifre') is None
    assert not engine.close_room(created.code, '\u015fifre')
    assert engine.get_room_info(created.code, created.admin_token)['state'] == 'Lobby'


def test_default_config_starts_with_generated_questions(engine):
    created = engine.create_room('Defaults')
    join = engine.request_join(created.code, 'Alice')
    assert engine.approve(created.code, created.admin_token, join.participant_id)
    assert engine.start_quiz(created.code, created.admin_token)

    questions = engine.get_questions(created.code, join.participant_id)
    assert sorted(q['topic'] for q in questions) == ['Caesar', 'Caesar', 'Vigenere', 'Vigenere']
    assert all(q['prompt'] for q in questions)


def test_caesar_encode_scenario_awards_full_score(engine, custom_questions, notifier):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    pid = _approved(engine, created)
    assert engine.start_quiz(created.code, created.admin_token)

    questions = engine.get_questions(created.code, pid)
    assert len(questions) == 1
    assert 'correct_answer' not in questions[0]

    result = engine.submit_answer(created.code, pid, questions[0]['id'], 'KHOOR')
    assert result.is_correct
    assert result.score_awarded == pytest.approx(100.0)
    assert result.is_finished

    board = notifier.named('scoreboard_updated')[-1][3]['scoreboard']
    assert board[0]['score'] == pytest.approx(100.0)
    assert board[0]['is_finished']

    again = engine.submit_answer(created.code, pid, questions[0]['id'], 'KHOOR')
    assert not again.is_correct
    assert again.message == 'Question already solved.'
    assert engine.get_room_info(created.code, created.admin_token)['scoreboard'][0]['score'] == pytest.approx(100.0)


def test_caesar_decode_scenario_two_wrong_answers_fail_the_question(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**KHOOR))
    pid = _approved(engine, created)
    engine.start_quiz(created.code, created.admin_token)
    qid = _first_question_id(engine, created, pid)

    first = engine.submit_answer(created.code, pid, qid, 'WRONG')
    assert not first.is_correct
    # no penalty after the first mistake
    assert first.remaining_score == pytest.approx(100.0)
    assert not first.is_finished

    second = engine.submit_answer(created.code, pid, qid, 'WRONG')
    assert second.remaining_score == 0
    assert second.is_finished

    details = engine.get_participant_details(created.code, created.admin_token, pid)
    q = details['quiz']['questions'][0]
    assert q['attempts'] == 2
    assert q['remaining_score'] == 0
    assert q['correct_answer'] == 'HELLO'
    assert details['participant']['is_finished']

    third = engine.submit_answer(created.code, pid, qid, 'HELLO')
    assert third.message == 'Question already failed.'
    assert third.score_awarded == 0


def test_finished_only_when_every_question_is_closed(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO), CustomQuestion(**KHOOR))
    pid = _approved(engine, created)
    engine.start_quiz(created.code, created.admin_token)
    questions = {q['prompt']: q['id'] for q in engine.get_questions(created.code, pid)}
    ids = list(questions.values())

    first = engine.submit_answer(created.code, pid, ids[0], 'WRONG')
    assert not first.is_finished
    engine.submit_answer(created.code, pid, ids[0], 'WRONG')
    state = engine.get_state(created.code, pid)
    assert not state['is_finished']
    assert state['quiz']['completed'] == 1

    # answering the remaining question, right or wrong, finishes the participant
    remaining = engine.submit_answer(created.code, pid, ids[1], 'WRONG')
    assert not remaining.is_finished
    last = engine.submit_answer(created.code, pid, ids[1], 'WRONG')
    assert last.is_finished
    assert engine.get_state(created.code, pid)['quiz']['completed'] == 2


def test_join_missing_room_then_reconnect_rebinds(engine, notifier):
    missing = engine.request_join('ABC123', 'Alice', None)
    assert not missing.success
    assert missing.message == 'Room not found'
    assert missing.participant_id is None

    created = engine.create_room('Quiz')
    join = engine.request_join(created.code.lower(), 'Alice', None, connection_id='sid-1')
    assert join.success
    assert join.room_name == 'Quiz'
    assert notifier.named('join_request')[-1][3]['display_name'] == 'Alice'

    rejoin = engine.request_join(created.code, 'Alice B', join.participant_id, connection_id='sid-2')
    assert rejoin.success
    assert rejoin.participant_id == join.participant_id

    info = engine.get_room_info(created.code, created.admin_token)
    assert len(info['participants']) == 1
    assert info['participants'][0]['name'] == 'Alice B'
    details = engine.get_participant_details(created.code, created.admin_token, join.participant_id)
    assert details['participant']['connection_id'] == 'sid-2'


def test_join_requires_a_name(engine):
    created = engine.create_room('Quiz')
    assert not engine.request_join(created.code, '   ').success


def test_resume_participant_reports_room_state(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    assert engine.resume_participant(created.code, 'ghost', 'sid') is ResumeStatus.NOT_FOUND
    assert engine.resume_participant('NOROOM', 'ghost', 'sid') is ResumeStatus.NOT_FOUND

    pid = _approved(engine, created)
    assert engine.resume_participant(created.code, pid, 'sid-new') is ResumeStatus.LOBBY
    engine.start_quiz(created.code, created.admin_token)
    assert engine.resume_participant(created.code, pid, 'sid-new') is ResumeStatus.RUNNING
    engine.finish_quiz(created.code, created.admin_token)
    assert engine.resume_participant(created.code, pid, 'sid-new') is ResumeStatus.FINISHED


def test_questions_hidden_in_lobby_and_for_unapproved(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    pid = _approved(engine, created)
    waiting = engine.request_join(created.code, 'Bob').participant_id
    assert engine.get_questions(created.code, pid) == []

    engine.start_quiz(created.code, created.admin_token)
    assert len(engine.get_questions(created.code, pid)) == 1
    assert engine.get_questions(created.code, waiting) == []
    assert engine.submit_answer(created.code, waiting, 'q', 'x').message == 'Participant not found'


def test_lifecycle_transitions_are_monotonic(engine, custom_questions, notifier):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    _approved(engine, created)
    assert not engine.finish_quiz(created.code, created.admin_token)
    assert engine.start_quiz(created.code, created.admin_token)
    assert not engine.start_quiz(created.code, created.admin_token)
    assert notifier.named('quiz_started')

    assert engine.finish_quiz(created.code, created.admin_token)
    assert not engine.finish_quiz(created.code, created.admin_token)
    assert engine.get_room_info(created.code, created.admin_token)['state'] == 'Finished'
    assert engine.store.get_archived(created.code).state is RoomState.FINISHED
    assert notifier.named('quiz_finished')


def test_submit_rejected_once_quiz_finished(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    pid = _approved(engine, created)
    engine.start_quiz(created.code, created.admin_token)
    qid = _first_question_id(engine, created, pid)
    engine.finish_quiz(created.code, created.admin_token)

    result = engine.submit_answer(created.code, pid, qid, 'KHOOR')
    assert not result.is_correct
    assert result.message == 'Quiz is not running.'
    assert engine.get_questions(created.code, pid)


def test_same_questions_for_everyone_clones_with_new_ids(engine, custom_questions):
    created = engine.create_room('Quiz')
    engine.update_config(created.code, created.admin_token, QuizConfig(
        questions_per_topic={Topic.CAESAR: 2, Topic.XOR: 2},
        same_questions_for_everyone=True,
        language='en',
    ))
    alice = _approved(engine, created, 'Alice')
    bob = _approved(engine, created, 'Bob')
    engine.start_quiz(created.code, created.admin_token)

    qa = engine.get_questions(created.code, alice)
    qb = engine.get_questions(created.code, bob)
    assert [(q['prompt'], q['data']) for q in qa] == [(q['prompt'], q['data']) for q in qb]
    assert not {q['id'] for q in qa} & {q['id'] for q in qb}

    # a participant approved mid-quiz gets the same set too
    carol = engine.request_join(created.code, 'Carol').participant_id
    engine.approve(created.code, created.admin_token, carol)
    qc = engine.get_questions(created.code, carol)
    assert [q['prompt'] for q in qc] == [q['prompt'] for q in qa]


def test_approve_all_reject_and_kick(engine, notifier):
    created = engine.create_room('Quiz')
    ids = [engine.request_join(created.code, name, connection_id=f"sid-{name}").participant_id
           for name in ('Ann', 'Ben', 'Cem')]
    assert engine.approve_all(created.code, created.admin_token) == 3
    assert len(notifier.named('join_approved')) == 3
    assert engine.approve_all(created.code, created.admin_token) == 0

    assert engine.reject(created.code, created.admin_token, ids[0], 'full')
    rejected = notifier.named('join_rejected')[-1]
    assert rejected[1] == 'sid-Ann'
    assert rejected[3]['reason'] == 'full'

    assert engine.kick_participant(created.code, created.admin_token, ids[1], 'cheating')
    kicked = notifier.named('kicked')[-1]
    assert kicked[1] == 'sid-Ben'
    assert kicked[3]['reason'] == 'cheating'
    assert not engine.kick_participant(created.code, created.admin_token, ids[1])

    names = [p['name'] for p in engine.get_room_info(created.code, created.admin_token)['participants']]
    assert names == ['Cem']


def test_time_limit_finishes_everyone_once(engine, custom_questions, clock, notifier):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO), time_limit_minutes=1)
    pid = _approved(engine, created)
    engine.start_quiz(created.code, created.admin_token)
    qid = _first_question_id(engine, created, pid)

    assert not engine.check_time(created.code)
    clock.advance(seconds=61)
    assert engine.check_time(created.code)
    assert engine.get_state(created.code, pid)['is_finished']
    info = engine.get_room_info(created.code, created.admin_token)
    assert info['participants'][0]['finished'] is True
    assert info['scoreboard'][0]['is_finished'] is True

    pushes = len(notifier.named('participant_list_changed'))
    assert engine.check_time(created.code)
    assert len(notifier.named('participant_list_changed')) == pushes

    late = engine.submit_answer(created.code, pid, qid, 'KHOOR')
    assert not late.is_correct
    assert late.message == 'Time is up.'


def test_submit_after_deadline_enforces_time_limit(engine, custom_questions, clock):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO), time_limit_minutes=5)
    pid = _approved(engine, created)
    engine.start_quiz(created.code, created.admin_token)
    qid = _first_question_id(engine, created, pid)

    clock.advance(minutes=10)
    result = engine.submit_answer(created.code, pid, qid, 'KHOOR')
    assert result.message == 'Time is up.'
    assert result.is_finished
    assert engine.get_state(created.code, pid)['is_finished']


def test_zero_time_limit_never_expires(engine, custom_questions, clock):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO), time_limit_minutes=0)
    _approved(engine, created)
    engine.start_quiz(created.code, created.admin_token)
    clock.advance(days=2)
    assert not engine.check_time(created.code)


def test_check_all_times_covers_every_room(engine, custom_questions, clock):
    short = _room_with(engine, custom_questions, CustomQuestion(**HELLO), time_limit_minutes=1)
    long = _room_with(engine, custom_questions, CustomQuestion(**HELLO), time_limit_minutes=60)
    for created in (short, long):
        _approved(engine, created)
        engine.start_quiz(created.code, created.admin_token)
    clock.advance(minutes=2)
    assert engine.check_all_times() == [short.code]


def test_scoreboard_sorted_by_score(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    ids = {name: _approved(engine, created, name) for name in ('Ann', 'Ben', 'Cem')}
    engine.start_quiz(created.code, created.admin_token)

    engine.submit_answer(created.code, ids['Ben'], _first_question_id(engine, created, ids['Ben']), 'KHOOR')
    ann_q = _first_question_id(engine, created, ids['Ann'])
    engine.submit_answer(created.code, ids['Ann'], ann_q, 'nope')
    engine.submit_answer(created.code, ids['Ann'], ann_q, 'nope')

    board = engine.get_room_info(created.code, created.admin_token)['scoreboard']
    assert [e['display_name'] for e in board] == ['Ben', 'Ann', 'Cem']
    assert [e['is_finished'] for e in board] == [True, True, False]
    assert board[2]['current_question_index'] == 1


def test_scoreboard_ties_follow_join_order(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    late = engine.request_join(created.code, 'Ann').participant_id
    _approved(engine, created, 'Ben')
    engine.start_quiz(created.code, created.admin_token)
    # Ann joined first but is only approved once the quiz is running
    assert engine.approve(created.code, created.admin_token, late)

    board = engine.get_room_info(created.code, created.admin_token)['scoreboard']
    assert [e['display_name'] for e in board] == ['Ann', 'Ben']


def test_close_room_archives_and_forgets(engine, custom_questions, notifier):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    _approved(engine, created)
    assert not engine.close_room(created.code, 'wrong')
    assert engine.close_room(created.code, created.admin_token)

    assert notifier.named('room_closed')[-1][1] == created.code
    assert engine.get_room_info(created.code, created.admin_token) is None
    assert engine.request_join(created.code, 'Late').message == 'Room not found'
    assert engine.store.get(created.code) is None
    assert engine.store.get_archived(created.code).code == created.code
    assert not engine.close_room(created.code, created.admin_token)


def test_results_from_active_room_and_archive(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO), CustomQuestion(**KHOOR))
    ann = _approved(engine, created, 'Ann')
    ben = _approved(engine, created, 'Ben')
    engine.start_quiz(created.code, created.admin_token)
    for q in engine.get_questions(created.code, ben):
        engine.submit_answer(created.code, ben, q['id'], 'KHOOR' if 'HELLO' in q['prompt'] else 'HELLO')
    engine.report_proctor_event(created.code, ann, {'type': 'tab_switch', 'content': 'left the page'})

    results = engine.get_results(created.code, created.admin_token)
    assert [p['display_name'] for p in results['participants']] == ['Ben', 'Ann']
    assert results['participants'][0]['rank'] == 1
    assert results['participants'][0]['score'] == pytest.approx(100.0)
    assert results['participants'][1]['proctor_warnings'] == 1
    caesar = results['topic_stats'][0]
    assert caesar['topic'] == 'Caesar'
    assert caesar['total'] == 4
    assert caesar['solved'] == 2
    assert caesar['success_rate'] == pytest.approx(50.0)

    engine.close_room(created.code, created.admin_token)
    archived = engine.get_results(created.code, created.admin_token)
    assert archived['room_code'] == created.code
    assert engine.get_results(created.code, 'wrong') is None


def test_proctor_events_reach_admins(engine, notifier, clock):
    created = engine.create_room('Quiz')
    pid = engine.request_join(created.code, 'Ann').participant_id
    assert engine.report_proctor_event(created.code, pid, {'type': 'copy', 'content': 'ctrl+c'})
    assert not engine.report_proctor_event(created.code, 'ghost', 'copy')

    scope, code, _, payload = notifier.named('proctor_event')[-1]
    assert (scope, code) == ('admins', created.code)
    assert payload['type'] == 'copy'
    assert payload['timestamp'] == clock().isoformat()
    info = engine.get_room_info(created.code, created.admin_token)
    assert info['participants'][0]['proctor_warnings'] == 1


def test_resume_admin_and_show_results(engine, notifier):
    created = engine.create_room('Quiz')
    assert engine.resume_admin(created.code, 'wrong', 'sid-admin') is None
    assert engine.resume_admin(created.code, created.admin_token, 'sid-admin') is RoomState.LOBBY
    targets = {(entry[1], entry[2]) for entry in notifier.sent if entry[0] == 'connection'}
    assert ('sid-admin', 'participant_list_changed') in targets
    assert ('sid-admin', 'scoreboard_updated') in targets

    assert engine.show_results(created.code, created.admin_token)
    assert notifier.named('show_results')[-1][0] == 'room'


def test_rooms_load_lazily_from_store(engine, notifier):
    created = engine.create_room('Persisted')
    engine.request_join(created.code, 'Ann')

    restarted = QuizEngine(engine.store, QuestionGenerator(), notifier=notifier)
    info = restarted.get_room_info(created.code, created.admin_token)
    assert info['room_name'] == 'Persisted'
    assert [p['name'] for p in info['participants']] == ['Ann']


class _FailingStore(MemoryRoomStore):
    def update(self, room):
        raise RoomStoreError('disk full')


def test_store_failures_keep_memory_authoritative(custom_questions, clock):
    engine = QuizEngine(_FailingStore(), QuestionGenerator(custom_questions), clock=clock)
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    pid = engine.request_join(created.code, 'Ann').participant_id
    engine.approve(created.code, created.admin_token, pid)
    engine.start_quiz(created.code, created.admin_token)

    qid = _first_question_id(engine, created, pid)
    assert engine.submit_answer(created.code, pid, qid, 'KHOOR').is_correct


def test_concurrent_correct_answers_award_once(engine, custom_questions):
    created = _room_with(engine, custom_questions, CustomQuestion(**HELLO))
    pid = _approved(engine, created)
    engine.start_quiz(created.code, created.admin_token)
    qid = _first_question_id(engine, created, pid)

    results = []

    def submit():
        results.append(engine.submit_answer(created.code, pid, qid, 'KHOOR'))

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(r.is_correct for r in results) == 1
    assert {r.message for r in results if not r.is_correct} <= {'Question already solved.'}
    assert engine.get_room_info(created.code, created.admin_token)['scoreboard'][0]['score'] == pytest.approx(100.0)
