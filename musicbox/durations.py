"""Musical duration tokens.

A token is a fraction of a whole note, optionally followed by ``D`` (dotted,
x1.5) or ``T`` (triplet, x2/3)::

	"1/4"    quarter note         1.0 beat
	"1/8D"   dotted eighth        0.75 beats
	"1/4T"   quarter triplet      2/3 beat
	"2/1"    double whole note    8.0 beats

A whole note is four beats whatever the meter.
"""

import logging
import typing


logger = logging.getLogger(__name__)

WHOLE_NOTE_BEATS = 4.0

BASE_BEATS: typing.Dict[str, float] = {
	"2/1": 8.0,
	"1/1": 4.0,
	"1/2": 2.0,
	"1/4": 1.0,
	"1/8": 0.5,
	"1/16": 0.25,
	"1/32": 0.125,
}

MODIFIERS: typing.Dict[str, float] = {
	"D": 1.5,
	"T": 2.0 / 3.0,
}

DEFAULT_TOKEN = "1/4"


def split_token (token: str) -> typing.Tuple[str, str]:

	"""Separate a token into its base fraction and modifier letter (possibly empty)."""

	token = token.strip().upper()

	if token and token[-1] in MODIFIERS:
		return token[:-1], token[-1]

	return token, ""


def is_valid_token (token: str) -> bool:

	base, _ = split_token(token)

	return base in BASE_BEATS


def duration_to_beats (token: str) -> float:

	"""Convert a token to beats. An unknown base falls back to a quarter note."""

	base, modifier = split_token(token)

	if base not in BASE_BEATS:
		logger.warning(f"Unknown duration {token!r}, using a quarter note")
		beats = BASE_BEATS[DEFAULT_TOKEN]
	else:
		beats = BASE_BEATS[base]

	if modifier:
		beats *= MODIFIERS[modifier]

	return beats


def duration_to_seconds (token: str, bpm: float) -> float:

	"""Convert a token to seconds at ``bpm`` quarter-note beats per minute."""

	return duration_to_beats(token) * 60.0 / bpm
