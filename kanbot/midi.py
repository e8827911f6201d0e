"""Simple melody notation to MIDI and back, and an ear-training quiz."""

from __future__ import annotations

import io
import math
import random
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

import mido

TICKS_PER_QUARTER = 960
TEMPO_BPM = 72
DEFAULT_TIMBRE = 40
DEFAULT_LEVEL = 5
VELOCITY = 120

NOTES = {
    "C": 60,
    "Db": 61,
    "D": 62,
    "Eb": 63,
    "E": 64,
    "F": 65,
    "Gb": 66,
    "G": 67,
    "Ab": 68,
    "A": 69,
    "Bb": 70,
    "B": 71,
}
_NAMES = {value % 12: name for name, value in NOTES.items()}
_LETTERS = "ABCDEFG"
_DIGITS = "0123456789"
_MAX_DELTA = 0x0FFFFFFF
_UINT32 = 0xFFFFFFFF
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1

LOWEST_TARGET = 55
TARGET_SPAN = 34
ROUNDS = 5
PERSONAL_MAX_ERRORS = 3
TEAM_MAX_ERRORS = 10
_PERSONAL_SCORES = {0: 1.0, 1: 0.5, 2: 0.2}


def octave(base: int, level: int) -> int:
    """Place a pitch class ``base`` in octave ``level`` (capped at 10)."""
    level = min(level, 10)
    if level == 0:
        return base
    result = (base + 12 * level) & 0xFF
    if result > 127:
        result -= 12
    return result


def note_name(note: int) -> str:
    """Name of the pitch class of a MIDI note, with flats for black keys."""
    return _NAMES[note % 12]


def parse_note(text: str) -> int:
    """Read a single note such as ``C#6``; characters it does not know are skipped."""
    base = 0
    level = 0
    for char in text.replace(" ", ""):
        if char in _LETTERS:
            base = NOTES[char] % 12
        elif char == "b":
            base = (base - 1) & 0xFF
        elif char == "#":
            base = (base + 1) & 0xFF
        elif char in _DIGITS:
            level = (level * 10 + int(char)) & 0xFF
    return octave(base, level or DEFAULT_LEVEL)


def _length_value(digits: str) -> int:
    try:
        value = int(digits)
    except ValueError:
        return 0
    return value if _INT64_MIN <= value <= _INT64_MAX else 0


def _span(length: int) -> int:
    """Ticks of a note whose length is a power of two of a quarter note."""
    if length >= 0:
        ticks = 0 if length >= 32 else (TICKS_PER_QUARTER << length) & _UINT32
    else:
        if -length >= 32:
            raise ValueError(f"音长超出范围: {length}")
        ticks = TICKS_PER_QUARTER >> -length
    if ticks > _MAX_DELTA:
        raise ValueError(f"音长超出范围: {length}")
    return ticks


@dataclass(frozen=True)
class _Token:
    rest: bool
    base: int
    level: int
    length: int


def _tokens(text: str) -> Iterator[_Token]:
    notes = text.replace(" ", "")
    pos = 0
    while pos < len(notes):
        base = level = 0
        rest = False
        digits: list[str] = []
        while True:
            char = notes[pos]
            if char == "R":
                rest = True
                pos += 1
            elif char in _LETTERS:
                base = NOTES[char] % 12
                pos += 1
            elif char == "b":
                base = (base - 1) & 0xFF
                pos += 1
            elif char == "#":
                base = (base + 1) & 0xFF
                pos += 1
            elif char in _DIGITS:
                level = (level * 10 + int(char)) & 0xFF
                pos += 1
            elif char == "<":
                pos += 1
                while pos < len(notes) and (notes[pos] == "-" or notes[pos] in _DIGITS):
                    digits.append(notes[pos])
                    pos += 1
            else:
                raise ValueError(f"无法解析第{pos}个位置的{char}字符")
            if pos >= len(notes) or notes[pos] in _LETTERS or notes[pos] == "R":
                break
        yield _Token(rest, base, level, _length_value("".join(digits)))


def check_timbre(value: int | str) -> int:
    """Validate an instrument (program) number; it must lie in 0..127."""
    timbre = int(value)
    if not 0 <= timbre <= 127:
        raise ValueError("音色应该在0~127之间")
    return timbre


def build_midi(text: str, timbre: int = DEFAULT_TIMBRE) -> mido.MidiFile:
    """Build a one-track MIDI file from melody notation.

    Notes are letters A-G with optional ``b``/``#`` and an octave number
    (default 5); ``R`` is a rest; ``<n`` sets the length to 2**n quarters.
    """
    track = mido.MidiTrack()
    track.append(mido.MetaMessage("time_signature", numerator=4, denominator=4, time=0))
    track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(TEMPO_BPM), time=0))
    track.append(mido.MetaMessage("instrument_name", name="Violin", time=0))
    track.append(mido.Message("program_change", channel=0, program=check_timbre(timbre), time=0))
    delay = 0
    for token in _tokens(text):
        span = _span(token.length)
        if token.rest:
            delay = span
            continue
        note = octave(token.base, token.level or DEFAULT_LEVEL)
        track.append(mido.Message("note_on", channel=0, note=note, velocity=VELOCITY, time=delay))
        track.append(mido.Message("note_off", channel=0, note=note, velocity=0, time=span))
        delay = 0
    track.append(mido.MetaMessage("end_of_track", time=0))
    midi = mido.MidiFile(ticks_per_beat=TICKS_PER_QUARTER)
    midi.tracks.append(track)
    return midi


def write_midi(text: str, path: str | Path, timbre: int = DEFAULT_TIMBRE) -> Path:
    """Write the melody to ``path`` unless a file is already there."""
    target = Path(path)
    if target.exists():
        return target
    build_midi(text, timbre).save(str(target))
    return target


def _power(length: float) -> int | None:
    """Nearest power of two of a length, rounding halves away from zero."""
    if length <= 0:
        return None
    exponent = math.log2(length)
    if exponent >= 0:
        return int(math.floor(exponent + 0.5))
    return -int(math.floor(-exponent + 0.5))


def midi_to_text(data: bytes, track: int = 0) -> str:
    """Turn one track of a MIDI file back into melody notation."""
    midi = mido.MidiFile(file=io.BytesIO(data))
    if not 0 <= track < len(midi.tracks):
        return ""
    parts: list[str] = []
    start = end = 0.0
    start_note = end_note = 0
    tick = 0
    for msg in midi.tracks[track]:
        tick += msg.time
        if msg.is_meta:
            continue
        sounding = msg.type == "note_on" and msg.velocity > 0
        if sounding:
            start = float(tick)
            start_note = msg.note
        if msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
            end = float(tick)
            end_note = msg.note
            if start_note == end_note:
                parts.append(note_name(msg.note))
                level = msg.note // 12
                if level != DEFAULT_LEVEL:
                    parts.append(str(level))
                power = _power((end - start) / TICKS_PER_QUARTER)
                if power is not None and power >= -4 and power != 0:
                    parts.append(f"<{power}")
                start_note = end_note = 0
        if sounding and start > end:
            power = _power((start - end) / TICKS_PER_QUARTER)
            if power == 0:
                parts.append("R")
            elif power is not None and power >= -4:
                parts.append(f"R<{power}")
    return "".join(parts)


def render_wav(midi_path: str | Path, wav_path: str | Path | None = None) -> Path:
    """Render a MIDI file to WAV with timidity; returns the WAV path."""
    source = Path(midi_path)
    target = Path(wav_path) if wav_path is not None else Path(str(source).replace(".mid", ".wav"))
    subprocess.run(["timidity", str(source), "-Ow", "-o", str(target)], check=True)
    return target


def spell(note: int) -> str:
    """Spell a note with its octave, e.g. ``Db5``."""
    return note_name(note) + str(note // 12)


@dataclass(frozen=True)
class Outcome:
    """The result of one guess in an ear-training session."""

    correct: bool
    answer: str
    errors: int
    round_over: bool
    finished: bool


@dataclass
class EarTraining:
    """A five-question ear-training session, alone or as a group."""

    team: bool = False
    rng: random.Random = field(default_factory=random.Random)
    scores: dict[int, float] = field(default_factory=dict)
    round: int = field(default=1, init=False)
    errors: int = field(default=0, init=False)
    target: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.max_errors = TEAM_MAX_ERRORS if self.team else PERSONAL_MAX_ERRORS
        self.new_target()

    @property
    def solution(self) -> str:
        """The current target spelled with its octave."""
        return spell(self.target)

    def new_target(self) -> int:
        """Pick a new note to guess and clear the error count."""
        self.errors = 0
        self.target = LOWEST_TARGET + self.rng.randrange(TARGET_SPAN)
        return self.target

    def finished(self) -> bool:
        return self.round > ROUNDS

    def answer(self, user_id: int, guess: str) -> Outcome:
        """Judge a guess; moves on to the next question when a round ends."""
        if self.finished():
            raise RuntimeError("听音练习已结束")
        correct = parse_note(guess) == self.target
        if not correct:
            self.errors += 1
        errors = self.errors
        solution = self.solution
        round_over = correct or errors == self.max_errors
        if round_over:
            if self.team:
                if errors != self.max_errors:
                    self.scores[user_id] = self.scores.get(user_id, 0.0) + 1.0
            elif errors in _PERSONAL_SCORES:
                self.scores[user_id] = self.scores.get(user_id, 0.0) + _PERSONAL_SCORES[errors]
            self.round += 1
            if not self.finished():
                self.new_target()
        return Outcome(correct, solution, errors, round_over, self.finished())