"""Question set generation and answer checking.

``QuestionGenerator.build`` turns a ``QuizConfig`` into the ordered list of
``QuestionState`` objects a participant solves. Each cipher family has one
builder that lays out prompt, display data and expected answer; random
generation and admin-authored custom templates both go through it.
"""

import logging
import random
from typing import Callable, Dict, Iterable, List, Optional

from cipherquiz.domain import CustomQuestion, QuestionState, QuizConfig, Topic
from cipherquiz.services import ciphers
from cipherquiz.services.texts import Texts

logger = logging.getLogger(__name__)

CAESAR_ANALYSIS = 'caesar_analysis'
TRANSPOSITION_ANALYSIS = 'transposition_analysis'

DEFAULT_CAESAR_SHIFT = 3
DEFAULT_HILL_KEY = (3, 5, 6, 17)
DEFAULT_VIGENERE_KEY = 'KEY'


class _Context:
    def __init__(self, rng: random.Random, texts: Texts, analysis: bool, difficulty: int):
        self.rng = rng
        self.texts = texts
        self.analysis = analysis
        self.extra = 2 * (min(max(int(difficulty or 1), 1), 3) - 1)

    def coin(self) -> bool:
        return self.rng.randrange(2) == 0

    def word(self, length: int = 5) -> str:
        return ''.join(self.rng.choice(ciphers.ALPHABET) for _ in range(length + self.extra))

    def phrase(self, min_words: int = 1, max_words: int = 3) -> str:
        count = self.rng.randint(min_words, max_words)
        return ' '.join(self.word(self.rng.randint(3, 7)) for _ in range(count))


# --- per-cipher layout -------------------------------------------------------

def caesar_question(texts: Texts, plain: str, shift: int, encode: bool = True, analysis: bool = False) -> QuestionState:
    cipher = ciphers.caesar_encode(plain, shift)
    data = {}
    if analysis:
        data[texts.label('ciphertext')] = cipher
        data[texts.label('indices')] = ciphers.ALPHABET_INDICES
        return QuestionState(
            topic=Topic.CAESAR.value,
            prompt=texts.prompt('caesar.analysis'),
            input_hint=texts.hint('shift_and_plain'),
            input_type=CAESAR_ANALYSIS,
            data=data,
            correct_answer=f"{shift}|{plain}",
        )
    data[texts.label('shift')] = f"+{shift}"
    if encode:
        data[texts.label('plaintext')] = plain
    else:
        data[texts.label('ciphertext')] = cipher
    data[texts.label('indices')] = ciphers.ALPHABET_INDICES
    return QuestionState(
        topic=Topic.CAESAR.value,
        prompt=texts.prompt('caesar.encode' if encode else 'caesar.decode', plain=plain, shift=shift),
        input_hint=texts.hint('encrypted' if encode else 'plaintext_upper'),
        data=data,
        correct_answer=cipher if encode else plain,
    )


def vigenere_question(texts: Texts, plain: str, key: str, encode: bool = True, analysis: bool = False) -> QuestionState:
    cipher = ciphers.vigenere_encode(plain, key)
    data = {texts.label('indices'): ciphers.ALPHABET_INDICES}
    if analysis:
        data[texts.label('plaintext')] = plain
        data[texts.label('ciphertext')] = cipher
        return QuestionState(
            topic=Topic.VIGENERE.value,
            prompt=texts.prompt('vigenere.analysis'),
            input_hint=texts.hint('keyword'),
            data=data,
            correct_answer=key,
        )
    data[texts.label('key')] = key
    if encode:
        data[texts.label('plaintext')] = plain
    else:
        data[texts.label('ciphertext')] = cipher
    return QuestionState(
        topic=Topic.VIGENERE.value,
        prompt=texts.prompt('vigenere.encode' if encode else 'vigenere.decode', plain=plain, key=key),
        input_hint=texts.hint('encrypted' if encode else 'plaintext'),
        data=data,
        correct_answer=cipher if encode else plain,
    )


def base64_question(texts: Texts, plain: str, encoded: str, encode: bool = True) -> QuestionState:
    data = {} if encode else {texts.label('encoded'): encoded}
    return QuestionState(
        topic=Topic.BASE64.value,
        prompt=texts.prompt('base64.encode' if encode else 'base64.decode', plain=plain),
        input_hint=texts.hint('encoded' if encode else 'plaintext'),
        data=data,
        correct_answer=encoded if encode else plain,
    )


def xor_question(texts: Texts, val1: int, val2: int, analysis: bool = False,
                 fmt1: str = 'dec', fmt2: str = 'dec') -> QuestionState:
    result = ciphers.xor(val1, val2)
    if analysis:
        return QuestionState(
            topic=Topic.XOR.value,
            prompt=texts.prompt('xor.analysis', val1=val1, result=result),
            input_hint=texts.hint('number'),
            input_type='number',
            data={texts.label('value1'): str(val1), texts.label('result'): str(result)},
            correct_answer=str(val2),
        )
    shown1 = ciphers.format_byte(val1, fmt1)
    shown2 = ciphers.format_byte(val2, fmt2)
    return QuestionState(
        topic=Topic.XOR.value,
        prompt=texts.prompt('xor.compute', val1=shown1, val2=shown2),
        input_hint=texts.hint('number'),
        input_type='number',
        data={texts.label('value1'): shown1, texts.label('value2'): shown2},
        correct_answer=str(result),
    )


def hill_question(texts: Texts, hill: ciphers.HillCipher, plain: str, encode: bool = True) -> QuestionState:
    plain = ciphers.HillCipher.prepare(plain)
    cipher = hill.encode(plain)
    a, b, c, d = hill.matrix
    data = {'Matrix_00': str(a), 'Matrix_01': str(b), 'Matrix_10': str(c), 'Matrix_11': str(d)}
    if encode:
        data[texts.label('plaintext')] = plain
    else:
        data[texts.label('ciphertext')] = cipher
    data[texts.label('indices')] = ciphers.ALPHABET_INDICES
    return QuestionState(
        topic=Topic.HILL.value,
        prompt=texts.prompt('hill.encode' if encode else 'hill.decode'),
        input_hint=texts.hint('answer'),
        data=data,
        correct_answer=cipher if encode else plain,
    )


def monoalphabetic_question(texts: Texts, mono: ciphers.MonoalphabeticCipher, plain: str,
                            encode: bool = True) -> QuestionState:
    cipher = mono.encode(plain)
    data = {texts.label('mixed_alphabet'): mono.mixed_alphabet}
    if encode:
        data[texts.label('plaintext')] = plain
    else:
        data[texts.label('ciphertext')] = cipher
    return QuestionState(
        topic=Topic.MONOALPHABETIC.value,
        prompt=texts.prompt('mono.encode' if encode else 'mono.decode', plain=plain),
        input_hint=texts.hint('answer'),
        data=data,
        correct_answer=cipher if encode else plain,
    )


def playfair_question(texts: Texts, key: str, plain: str, encode: bool = True,
                      analysis: bool = False) -> QuestionState:
    playfair = ciphers.PlayfairCipher(key)
    plain = playfair.normalize(plain)
    cipher = playfair.encode(plain)
    data = {texts.label('keyword'): key, texts.label('matrix'): playfair.matrix_string()}
    if analysis:
        data[texts.label('ciphertext')] = cipher
        return QuestionState(
            topic=Topic.PLAYFAIR.value,
            prompt=texts.prompt('playfair.analysis'),
            input_hint=texts.hint('meaningful'),
            data=data,
            correct_answer=plain,
        )
    if encode:
        data[texts.label('plaintext')] = plain
    else:
        data[texts.label('ciphertext')] = cipher
    return QuestionState(
        topic=Topic.PLAYFAIR.value,
        prompt=texts.prompt('playfair.encode' if encode else 'playfair.decode', plain=plain, key=key),
        input_hint=texts.hint('answer'),
        data=data,
        correct_answer=cipher if encode else plain,
    )


def transposition_question(texts: Texts, key: str, plain: str, encode: bool = True,
                           analysis: bool = False) -> QuestionState:
    trans = ciphers.TranspositionCipher(key)
    plain = ciphers.letters_only(plain)
    cipher = trans.encode(plain)
    if analysis:
        return QuestionState(
            topic=Topic.TRANSPOSITION.value,
            prompt=texts.prompt('transposition.analysis'),
            input_hint=texts.hint('keyword'),
            input_type=TRANSPOSITION_ANALYSIS,
            data={
                texts.label('plaintext'): plain,
                texts.label('ciphertext'): cipher,
                texts.label('indices'): ciphers.ALPHABET_INDICES,
            },
            correct_answer=trans.keyword,
        )
    data = {texts.label('keyword'): trans.keyword}
    if encode:
        data[texts.label('plaintext')] = plain
    else:
        data[texts.label('ciphertext')] = cipher
    data[texts.label('indices')] = ciphers.ALPHABET_INDICES
    return QuestionState(
        topic=Topic.TRANSPOSITION.value,
        prompt=texts.prompt('transposition.encode' if encode else 'transposition.decode',
                            plain=plain, key=trans.keyword),
        input_hint=texts.hint('answer'),
        data=data,
        correct_answer=cipher if encode else plain,
    )


# --- random generation -------------------------------------------------------

def _random_caesar(ctx: _Context) -> QuestionState:
    shift = ctx.rng.randint(1, 25)
    if ctx.analysis:
        return caesar_question(ctx.texts, ctx.texts.meaningful(ctx.rng), shift, analysis=True)
    return caesar_question(ctx.texts, ctx.word(), shift, encode=ctx.coin())


def _random_vigenere(ctx: _Context) -> QuestionState:
    key = ctx.word(3)
    if ctx.analysis:
        return vigenere_question(ctx.texts, ctx.texts.meaningful(ctx.rng), key, analysis=True)
    return vigenere_question(ctx.texts, ctx.phrase(2, 3), key, encode=ctx.coin())


def _random_base64(ctx: _Context) -> QuestionState:
    plain = ctx.phrase(1, 3)
    return base64_question(ctx.texts, plain, ciphers.base64_encode(plain), encode=ctx.coin())


def _random_xor(ctx: _Context) -> QuestionState:
    val1 = ctx.rng.randint(0, 255)
    val2 = ctx.rng.randint(0, 255)
    if ctx.analysis:
        return xor_question(ctx.texts, val1, val2, analysis=True)
    fmts = ('dec', 'hex', 'bin')
    return xor_question(ctx.texts, val1, val2, fmt1=ctx.rng.choice(fmts), fmt2=ctx.rng.choice(fmts))


def random_hill_cipher(rng: random.Random) -> ciphers.HillCipher:
    while True:
        a, b, c, d = (rng.randrange(26) for _ in range(4))
        if ciphers.HillCipher.is_invertible(a, b, c, d):
            return ciphers.HillCipher(a, b, c, d)


def _random_hill(ctx: _Context) -> QuestionState:
    return hill_question(ctx.texts, random_hill_cipher(ctx.rng), ctx.word(4), encode=ctx.coin())


def _random_monoalphabetic(ctx: _Context) -> QuestionState:
    mono = ciphers.MonoalphabeticCipher(ctx.word(5))
    return monoalphabetic_question(ctx.texts, mono, ctx.word(5), encode=ctx.coin())


def _random_playfair(ctx: _Context) -> QuestionState:
    key = ctx.word(5)
    if ctx.analysis:
        return playfair_question(ctx.texts, key, ctx.texts.short_meaningful(ctx.rng), analysis=True)
    return playfair_question(ctx.texts, key, ctx.word(6), encode=ctx.coin())


def _random_transposition(ctx: _Context) -> QuestionState:
    key = ctx.word(5)
    if ctx.analysis:
        return transposition_question(ctx.texts, key, ctx.texts.meaningful(ctx.rng), analysis=True)
    plain = ctx.word(10)
    # a trailing filler letter would be indistinguishable from padding
    while plain.endswith(ciphers.FILLER):
        plain = plain[:-1] + ctx.rng.choice(ciphers.ALPHABET[:-3])
    return transposition_question(ctx.texts, key, plain, encode=ctx.coin())


RANDOM_BUILDERS: Dict[Topic, Callable[[_Context], QuestionState]] = {
    Topic.CAESAR: _random_caesar,
    Topic.VIGENERE: _random_vigenere,
    Topic.BASE64: _random_base64,
    Topic.XOR: _random_xor,
    Topic.HILL: _random_hill,
    Topic.MONOALPHABETIC: _random_monoalphabetic,
    Topic.PLAYFAIR: _random_playfair,
    Topic.TRANSPOSITION: _random_transposition,
}


# --- custom templates --------------------------------------------------------

def _parse_int(raw: str, default: int, what: str, cq: CustomQuestion) -> int:
    text = str(raw if raw is not None else '').strip()
    try:
        if text[:2].lower() in ('0x', '0b'):
            return int(text, 0)
        return int(text)
    except ValueError:
        logger.warning(f"[custom] question={cq.id} bad {what}={raw!r}, using {default}")
        return default


def _custom_caesar(cq: CustomQuestion, texts: Texts) -> QuestionState:
    shift = _parse_int(cq.key, DEFAULT_CAESAR_SHIFT, 'shift', cq)
    plain = cq.text if cq.is_encrypt else ciphers.caesar_decode(cq.text, shift)
    return caesar_question(texts, plain, shift, encode=cq.is_encrypt, analysis=cq.is_analysis)


def _custom_vigenere(cq: CustomQuestion, texts: Texts) -> QuestionState:
    key = ciphers.letters_only(cq.key)
    if not key:
        logger.warning(f"[custom] question={cq.id} empty vigenere key, using {DEFAULT_VIGENERE_KEY}")
        key = DEFAULT_VIGENERE_KEY
    plain = cq.text if cq.is_encrypt else ciphers.vigenere_decode(cq.text, key)
    return vigenere_question(texts, plain, key, encode=cq.is_encrypt)


def _custom_base64(cq: CustomQuestion, texts: Texts) -> QuestionState:
    if cq.is_encrypt:
        return base64_question(texts, cq.text, ciphers.base64_encode(cq.text), encode=True)
    encoded = cq.text.strip()
    return base64_question(texts, ciphers.base64_decode(encoded), encoded, encode=False)


def _custom_xor(cq: CustomQuestion, texts: Texts) -> QuestionState:
    val1 = _parse_int(cq.text, 0, 'xor operand', cq)
    val2 = _parse_int(cq.key, 0, 'xor operand', cq)
    if not (0 <= val1 <= 255 and 0 <= val2 <= 255):
        logger.warning(f"[custom] question={cq.id} xor operands out of range, using 0")
        val1 = val1 if 0 <= val1 <= 255 else 0
        val2 = val2 if 0 <= val2 <= 255 else 0
    return xor_question(texts, val1, val2)


def _custom_hill(cq: CustomQuestion, texts: Texts) -> QuestionState:
    try:
        key = ciphers.parse_hill_key(cq.key)
    except ValueError as exc:
        logger.warning(f"[custom] question={cq.id} bad hill key ({exc}), using default")
        key = DEFAULT_HILL_KEY
    if not ciphers.HillCipher.is_invertible(*key):
        logger.warning(f"[custom] question={cq.id} singular hill key={key}, using default")
        key = DEFAULT_HILL_KEY
    hill = ciphers.HillCipher(*key)
    plain = cq.text if cq.is_encrypt else hill.decode(cq.text)
    return hill_question(texts, hill, plain, encode=cq.is_encrypt)


def _custom_monoalphabetic(cq: CustomQuestion, texts: Texts) -> QuestionState:
    mono = ciphers.MonoalphabeticCipher(cq.key)
    text = cq.text.upper()
    plain = text if cq.is_encrypt else mono.decode(text)
    return monoalphabetic_question(texts, mono, plain, encode=cq.is_encrypt)


def _custom_playfair(cq: CustomQuestion, texts: Texts) -> QuestionState:
    plain = cq.text if cq.is_encrypt else ciphers.PlayfairCipher(cq.key).decode(cq.text)
    return playfair_question(texts, cq.key, plain, encode=cq.is_encrypt)


def _custom_transposition(cq: CustomQuestion, texts: Texts) -> QuestionState:
    plain = cq.text if cq.is_encrypt else ciphers.TranspositionCipher(cq.key).decode(cq.text)
    return transposition_question(texts, cq.key, plain, encode=cq.is_encrypt)


CUSTOM_BUILDERS: Dict[Topic, Callable[[CustomQuestion, Texts], QuestionState]] = {
    Topic.CAESAR: _custom_caesar,
    Topic.VIGENERE: _custom_vigenere,
    Topic.BASE64: _custom_base64,
    Topic.XOR: _custom_xor,
    Topic.HILL: _custom_hill,
    Topic.MONOALPHABETIC: _custom_monoalphabetic,
    Topic.PLAYFAIR: _custom_playfair,
    Topic.TRANSPOSITION: _custom_transposition,
}


def question_from_custom(cq: CustomQuestion, language: str) -> QuestionState:
    texts = Texts(language)
    topic = Topic.parse(cq.topic)
    if topic is None:
        logger.warning(f"[custom] question={cq.id} unknown topic={cq.topic!r}, using free text")
        return QuestionState(
            topic=cq.topic,
            prompt=cq.text,
            input_hint=texts.hint('answer'),
            correct_answer=cq.text,
        )
    return CUSTOM_BUILDERS[topic](cq, texts)


# --- set assembly ------------------------------------------------------------

class QuestionGenerator:
    """Builds scored, shuffled question sets.

    ``custom_source`` is anything with a ``get_questions()`` method returning
    ``CustomQuestion`` objects; pass ``None`` when custom questions are not
    used.
    """

    def __init__(self, custom_source=None):
        self.custom_source = custom_source

    def _custom_questions(self, ids: Iterable[str]) -> List[CustomQuestion]:
        wanted = set(ids)
        if not wanted or self.custom_source is None:
            return []
        return [cq for cq in self.custom_source.get_questions() if cq.id in wanted]

    def build(self, config: QuizConfig, rng: Optional[random.Random] = None) -> List[QuestionState]:
        rng = rng or random.Random()
        total = sum(config.questions_per_topic.values()) + len(config.custom_question_ids)
        if total == 0:
            return []

        ctx = _Context(rng, Texts(config.language), config.is_cryptanalysis, config.difficulty)
        questions: List[QuestionState] = []
        for topic, count in config.questions_per_topic.items():
            for _ in range(count):
                questions.append(RANDOM_BUILDERS[topic](ctx))
        for cq in self._custom_questions(config.custom_question_ids):
            questions.append(question_from_custom(cq, config.language))

        score = 100.0 / total
        for q in questions:
            q.remaining_score = score
            q.total = total
        rng.shuffle(questions)
        for position, q in enumerate(questions, start=1):
            q.position = position
        logger.info(f"[build] questions={len(questions)} total={total} language={ctx.texts.language}")
        return questions


def clone_questions(questions: Iterable[QuestionState]) -> List[QuestionState]:
    return [q.clone() for q in questions]


def _caesar_parts(answer: str):
    if '|' not in answer:
        return None
    shift, plain = answer.split('|', 1)
    return shift.strip().lstrip('+'), ' '.join(plain.split()).upper()


def answers_match(question: QuestionState, answer: Optional[str]) -> bool:
    given = (answer or '').strip()
    expected = (question.correct_answer or '').strip()
    topic = Topic.parse(question.topic)

    if topic is Topic.BASE64 and any(ch.islower() for ch in expected):
        return given == expected
    if topic is Topic.XOR:
        try:
            return int(given) == int(expected)
        except ValueError:
            return False
    if question.input_type == CAESAR_ANALYSIS:
        parts = _caesar_parts(given)
        return parts is not None and parts == _caesar_parts(expected)
    if question.input_type == TRANSPOSITION_ANALYSIS:
        return bool(ciphers.letters_only(given)) and ciphers.same_permutation(given, expected)
    return given.upper() == expected.upper()
