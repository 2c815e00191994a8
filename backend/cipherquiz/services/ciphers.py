"""Classical cipher primitives used to build and check puzzles.

All alphabetic ciphers work on the 26 ASCII letters. Characters outside
that range pass through untouched and the case of each transformed letter
follows the input letter.
"""

import base64
import binascii
import string
from math import gcd
from typing import List, Sequence, Tuple

ALPHABET = string.ascii_uppercase
FILLER = 'X'
INVALID_BASE64 = 'INVALID BASE64'
DEFAULT_TRANSPOSITION_KEY = 'KEY'
ALPHABET_INDICES = ', '.join(f"{ch}={i}" for i, ch in enumerate(ALPHABET))


def _is_letter(ch: str) -> bool:
    return ch in string.ascii_letters


def letters_only(text: str) -> str:
    """Upper-cased ASCII letters of ``text`` with everything else dropped."""
    return ''.join(ch for ch in (text or '').upper() if ch in ALPHABET)


def _shift(ch: str, shift: int) -> str:
    base = ord('A') if ch.isupper() else ord('a')
    return chr((ord(ch) - base + shift) % 26 + base)


# --- Caesar ---

def caesar_encode(text: str, shift: int) -> str:
    return ''.join(_shift(ch, shift) if _is_letter(ch) else ch for ch in text)


def caesar_decode(text: str, shift: int) -> str:
    return caesar_encode(text, (26 - shift % 26) % 26)


# --- Vigenere ---

def _vigenere(text: str, key: str, direction: int) -> str:
    shifts = [ALPHABET.index(ch) for ch in letters_only(key)]
    if not shifts:
        raise ValueError('Vigenere key must contain at least one letter')
    out = []
    key_index = 0
    for ch in text:
        if _is_letter(ch):
            out.append(_shift(ch, direction * shifts[key_index % len(shifts)]))
            key_index += 1
        else:
            out.append(ch)
    return ''.join(out)


def vigenere_encode(text: str, key: str) -> str:
    return _vigenere(text, key, 1)


def vigenere_decode(text: str, key: str) -> str:
    return _vigenere(text, key, -1)


# --- Base64 ---

def base64_encode(text: str) -> str:
    return base64.b64encode(text.encode('utf-8')).decode('ascii')


def base64_decode(text: str) -> str:
    try:
        return base64.b64decode((text or '').strip(), validate=True).decode('utf-8')
    except (binascii.Error, ValueError):
        return INVALID_BASE64


# --- XOR ---

def xor(val1: int, val2: int) -> int:
    return (val1 & 0xFF) ^ (val2 & 0xFF)


def format_byte(value: int, fmt: str) -> str:
    if fmt == 'hex':
        return f"0x{value:X}"
    if fmt == 'bin':
        return format(value, '08b')
    return str(value)


# --- Hill (2x2, mod 26) ---

def mod_inverse(value: int, modulus: int = 26) -> int:
    """Multiplicative inverse of ``value`` mod ``modulus``; ValueError if none."""
    value %= modulus
    if gcd(value, modulus) != 1:
        raise ValueError(f"{value} has no inverse mod {modulus}")
    return pow(value, -1, modulus)


class HillCipher:
    def __init__(self, a: int, b: int, c: int, d: int):
        self.matrix = (a % 26, b % 26, c % 26, d % 26)

    @property
    def determinant(self) -> int:
        a, b, c, d = self.matrix
        return (a * d - b * c) % 26

    @staticmethod
    def is_invertible(a: int, b: int, c: int, d: int) -> bool:
        return gcd((a * d - b * c) % 26, 26) == 1

    @staticmethod
    def prepare(text: str) -> str:
        letters = letters_only(text)
        if len(letters) % 2:
            letters += FILLER
        return letters

    @staticmethod
    def _apply(matrix: Tuple[int, int, int, int], text: str) -> str:
        a, b, c, d = matrix
        out = []
        for i in range(0, len(text), 2):
            p1, p2 = ALPHABET.index(text[i]), ALPHABET.index(text[i + 1])
            out.append(ALPHABET[(a * p1 + b * p2) % 26])
            out.append(ALPHABET[(c * p1 + d * p2) % 26])
        return ''.join(out)

    def inverse_matrix(self) -> Tuple[int, int, int, int]:
        a, b, c, d = self.matrix
        det_inv = mod_inverse(self.determinant, 26)
        return (
            (d * det_inv) % 26,
            (-b * det_inv) % 26,
            (-c * det_inv) % 26,
            (a * det_inv) % 26,
        )

    def encode(self, plaintext: str) -> str:
        return self._apply(self.matrix, self.prepare(plaintext))

    def decode(self, ciphertext: str) -> str:
        return self._apply(self.inverse_matrix(), self.prepare(ciphertext))


# --- Monoalphabetic ---

def mixed_alphabet(keyword: str) -> str:
    seen: List[str] = []
    for ch in letters_only(keyword) + ALPHABET:
        if ch not in seen:
            seen.append(ch)
    return ''.join(seen)


class MonoalphabeticCipher:
    def __init__(self, keyword: str):
        self.mixed_alphabet = mixed_alphabet(keyword)
        self._encode_table = dict(zip(ALPHABET, self.mixed_alphabet))
        self._decode_table = dict(zip(self.mixed_alphabet, ALPHABET))

    @staticmethod
    def _translate(text: str, table) -> str:
        out = []
        for ch in text:
            if not _is_letter(ch):
                out.append(ch)
                continue
            mapped = table[ch.upper()]
            out.append(mapped if ch.isupper() else mapped.lower())
        return ''.join(out)

    def encode(self, plaintext: str) -> str:
        return self._translate(plaintext, self._encode_table)

    def decode(self, ciphertext: str) -> str:
        return self._translate(ciphertext, self._decode_table)


# --- Playfair ---

class PlayfairCipher:
    def __init__(self, keyword: str):
        letters: List[str] = []
        for ch in (letters_only(keyword) + ALPHABET).replace('J', 'I'):
            if ch not in letters:
                letters.append(ch)
        self.grid = [letters[row * 5:row * 5 + 5] for row in range(5)]
        self._positions = {ch: (i // 5, i % 5) for i, ch in enumerate(letters)}

    @staticmethod
    def normalize(text: str) -> str:
        letters = letters_only(text).replace('J', 'I')
        if len(letters) % 2:
            letters += FILLER
        return letters

    def matrix_string(self) -> str:
        return '\n'.join(' '.join(row) for row in self.grid)

    def _transform(self, text: str, step: int) -> str:
        text = self.normalize(text)
        out = []
        for i in range(0, len(text), 2):
            r1, c1 = self._positions[text[i]]
            r2, c2 = self._positions[text[i + 1]]
            if r1 == r2:
                out.append(self.grid[r1][(c1 + step) % 5])
                out.append(self.grid[r2][(c2 + step) % 5])
            elif c1 == c2:
                out.append(self.grid[(r1 + step) % 5][c1])
                out.append(self.grid[(r2 + step) % 5][c2])
            else:
                out.append(self.grid[r1][c2])
                out.append(self.grid[r2][c1])
        return ''.join(out)

    def encode(self, plaintext: str) -> str:
        return self._transform(plaintext, 1)

    def decode(self, ciphertext: str) -> str:
        return self._transform(ciphertext, -1)


# --- Columnar transposition ---

def column_permutation(keyword: str) -> List[int]:
    """Column read order: keyword letters sorted, ties by column index."""
    return sorted(range(len(keyword)), key=lambda i: (keyword[i], i))


class TranspositionCipher:
    """Columnar transposition keyed by the permutation its keyword induces.

    Decoding trims trailing filler letters, so a plaintext that genuinely
    ends in ``X`` loses those letters on the way back.
    """

    def __init__(self, keyword: str):
        self.keyword = letters_only(keyword) or DEFAULT_TRANSPOSITION_KEY
        self.permutation = column_permutation(self.keyword)

    def _grid_size(self, length: int) -> Tuple[int, int]:
        cols = len(self.keyword)
        rows = -(-length // cols)
        return rows, cols

    def encode(self, plaintext: str) -> str:
        text = letters_only(plaintext)
        if not text:
            return ''
        rows, cols = self._grid_size(len(text))
        padded = text.ljust(rows * cols, FILLER)
        return ''.join(padded[r * cols + c] for c in self.permutation for r in range(rows))

    def decode(self, ciphertext: str) -> str:
        text = letters_only(ciphertext)
        if not text:
            return ''
        rows, cols = self._grid_size(len(text))
        padded = text.ljust(rows * cols, FILLER)
        grid: List[List[str]] = [[''] * cols for _ in range(rows)]
        idx = 0
        for c in self.permutation:
            for r in range(rows):
                grid[r][c] = padded[idx]
                idx += 1
        return ''.join(''.join(row) for row in grid).rstrip(FILLER)


def same_permutation(key_a: str, key_b: str) -> bool:
    return TranspositionCipher(key_a).permutation == TranspositionCipher(key_b).permutation


def parse_hill_key(raw: str) -> Sequence[int]:
    """Parse "a,b,c,d" (commas or spaces); ValueError unless exactly four ints."""
    parts = (raw or '').replace(',', ' ').split()
    if len(parts) != 4:
        raise ValueError(f"Hill key needs 4 numbers, got {len(parts)}")
    return tuple(int(p) for p in parts)
