"""
Morse encoding of recognized text into timed flash patterns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Tuple

UNIT_DURATION_MIN_MS = 50
UNIT_DURATION_MAX_MS = 500

# International Morse Code table. A space becomes the word separator.
MORSE_CODE = {
    "A": ".-", "B": "-...", "C": "-.-.", "D": "-..", "E": ".", "F": "..-.",
    "G": "--.", "H": "....", "I": "..", "J": ".---", "K": "-.-", "L": ".-..",
    "M": "--", "N": "-.", "O": "---", "P": ".--.", "Q": "--.-", "R": ".-.",
    "S": "...", "T": "-", "U": "..-", "V": "...-", "W": ".--", "X": "-..-",
    "Y": "-.--", "Z": "--..",
    "1": ".----", "2": "..---", "3": "...--", "4": "....-", "5": ".....",
    "6": "-....", "7": "--...", "8": "---..", "9": "----.", "0": "-----",
    " ": "/",
}

WORD_SEPARATOR = "/"


class FlashBit(Enum):
    """A single unit of light output."""
    ON = 1
    OFF = 0


# Bits emitted for each character of a Morse string.
_SYMBOL_BITS = {
    ".": (FlashBit.ON, FlashBit.OFF),
    "-": (FlashBit.ON, FlashBit.ON, FlashBit.ON, FlashBit.OFF),
    " ": (FlashBit.OFF, FlashBit.OFF),
    WORD_SEPARATOR: (FlashBit.OFF, FlashBit.OFF, FlashBit.OFF, FlashBit.OFF),
}


def clamp_unit_duration(value_ms: int) -> int:
    """Clamp a unit duration into the supported range."""
    return max(UNIT_DURATION_MIN_MS, min(UNIT_DURATION_MAX_MS, int(value_ms)))


@dataclass(frozen=True)
class FlashPattern:
    """Ordered flash bits sharing one unit duration.

    Built once per analysis cycle and played exactly once.
    """
    bits: Tuple[FlashBit, ...]
    unit_duration_ms: int

    def __post_init__(self):
        if not UNIT_DURATION_MIN_MS <= self.unit_duration_ms <= UNIT_DURATION_MAX_MS:
            raise ValueError(
                f"unit duration {self.unit_duration_ms}ms outside "
                f"[{UNIT_DURATION_MIN_MS}, {UNIT_DURATION_MAX_MS}]"
            )
        object.__setattr__(self, "bits", tuple(self.bits))

    def __len__(self) -> int:
        return len(self.bits)

    @property
    def total_duration_ms(self) -> int:
        return len(self.bits) * self.unit_duration_ms

    @classmethod
    def from_ints(cls, values: Iterable[int], unit_duration_ms: int) -> "FlashPattern":
        """Build a pattern from 1/0 values (1 = light on)."""
        return cls(tuple(FlashBit.ON if v else FlashBit.OFF for v in values), unit_duration_ms)


def text_to_morse(text: str) -> str:
    """Convert text to a Morse string, one symbol per character.

    Characters missing from the table become an empty symbol, so each one
    still adds a letter gap. Symbols are separated by a single space; spaces
    in the text become the "/" word separator.
    """
    return " ".join(MORSE_CODE.get(char, "") for char in text.upper())


def morse_to_bits(morse: str) -> Tuple[FlashBit, ...]:
    """Expand a Morse string into unit-length flash bits."""
    bits: List[FlashBit] = []
    for char in morse:
        bits.extend(_SYMBOL_BITS.get(char, ()))
    return tuple(bits)


def morse_to_pattern(morse: str, unit_duration_ms: int) -> FlashPattern:
    """Convert a Morse string to a flash pattern.

    Dot is ON 1 unit + OFF 1 unit, dash is ON 3 units + OFF 1 unit, a letter
    gap (space) is OFF 2 units and a word gap ("/") is OFF 4 units.
    """
    return FlashPattern(morse_to_bits(morse), unit_duration_ms)


def pattern_length(morse: str) -> int:
    """Number of bits morse_to_pattern produces for a Morse string."""
    return (
        2 * morse.count(".")
        + 4 * morse.count("-")
        + 2 * morse.count(" ")
        + 4 * morse.count(WORD_SEPARATOR)
    )


def encode_text(text: str, unit_duration_ms: int) -> FlashPattern:
    """Encode text straight into a flash pattern."""
    return morse_to_pattern(text_to_morse(text), unit_duration_ms)
